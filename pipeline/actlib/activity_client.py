import base64
from datetime import date

import requests


ACTIVITY_PATH = "/scr/api/activity"
RECORD_TYPES = ("LOGINS", "COMMENTS", "ITEMS_CHANGED", "ITEMS_VIEWED")
START_OF_DAY_SUFFIX = "T00:00:00.000-00:00"
END_OF_DAY_SUFFIX = "T23:59:59.999-00:00"


#============================================
class ActivityApiError(RuntimeError):
	"""
	Raised when the activity API answers with anything but HTTP 200
	or cannot be reached at all.
	"""

	def __init__(self, message: str, status_code: int | None = None):
		super().__init__(message)
		self.status_code = status_code


#============================================
def build_basic_auth_header(username: str, password: str) -> str:
	"""
	Build the HTTP Basic Authorization header value.
	"""
	token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
	return f"Basic {token}"


#============================================
class ActivityClient:
	"""
	Thin requests wrapper around the activity resource.
	"""

	def __init__(
		self,
		server: str,
		account: str,
		username: str,
		password: str,
		timeout_seconds: int = 0,
		session=None,
	):
		self.server = server.rstrip("/")
		self.account = account
		self.timeout = timeout_seconds if timeout_seconds > 0 else None
		self._api_call_count = 0
		self._api_calls_by_type: dict[str, int] = {}
		self.session = session if session is not None else requests.Session()
		self.session.headers["Authorization"] = build_basic_auth_header(username, password)
		self.session.headers["Accept"] = "application/json"

	#============================================
	def record_api_call(self, record_type: str) -> None:
		"""
		Track one outbound activity API call.
		"""
		self._api_call_count += 1
		if record_type not in self._api_calls_by_type:
			self._api_calls_by_type[record_type] = 0
		self._api_calls_by_type[record_type] += 1

	#============================================
	def api_usage_snapshot(self) -> dict:
		"""
		Return API call counters for reporting.
		"""
		return {
			"api_call_count": self._api_call_count,
			"api_calls_by_type": dict(self._api_calls_by_type),
		}

	#============================================
	def build_activity_url(self) -> str:
		return f"{self.server}{ACTIVITY_PATH}"

	#============================================
	def build_activity_params(self, record_type: str, start: date, end: date) -> dict:
		"""
		Build query parameters covering whole days start..end in UTC.
		"""
		if record_type not in RECORD_TYPES:
			raise RuntimeError(f"Unsupported activity record type: {record_type}")
		return {
			"account": self.account,
			"type": record_type,
			"startDate": start.isoformat() + START_OF_DAY_SUFFIX,
			"endDate": end.isoformat() + END_OF_DAY_SUFFIX,
		}

	#============================================
	def open_activity_stream(self, record_type: str, start: date, end: date):
		"""
		GET one record type for one window and return the open response.

		The caller owns the response and must close it, normally with a
		`with` block around the mapper that consumes it.
		"""
		url = self.build_activity_url()
		params = self.build_activity_params(record_type, start, end)
		self.record_api_call(record_type)
		try:
			response = self.session.get(url, params=params, stream=True, timeout=self.timeout)
		except requests.RequestException as error:
			raise ActivityApiError(
				f"Error calling the activity API ({record_type}): {error}"
			) from error
		if response.status_code != 200:
			status_line = f"{response.status_code} {response.reason or ''}".strip()
			response.close()
			raise ActivityApiError(
				f"Error calling the activity API: {status_line}",
				status_code=response.status_code,
			)
		return response

	#============================================
	def close(self) -> None:
		self.session.close()
