import base64
import os
import sys
from datetime import date

import pytest
import requests


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from actlib import activity_client


#============================================
class StubResponse:
	def __init__(self, status_code: int, reason: str = "OK"):
		self.status_code = status_code
		self.reason = reason
		self.closed = False

	def close(self):
		self.closed = True


#============================================
class StubSession:
	"""
	Record GET calls and hand back canned responses.
	"""

	def __init__(self, response=None, error=None):
		self.headers = {}
		self.calls = []
		self.response = response
		self.error = error
		self.closed = False

	def get(self, url, **kwargs):
		self.calls.append((url, kwargs))
		if self.error is not None:
			raise self.error
		return self.response

	def close(self):
		self.closed = True


#============================================
def make_client(session, timeout_seconds: int = 0):
	return activity_client.ActivityClient(
		"https://bwl.example.com/",
		"acme",
		"alice",
		"s3cret",
		timeout_seconds=timeout_seconds,
		session=session,
	)


#============================================
def test_basic_auth_header_encodes_user_and_password() -> None:
	"""
	Authorization header is Basic base64(user:password).
	"""
	header = activity_client.build_basic_auth_header("alice", "s3cret")
	assert header == "Basic " + base64.b64encode(b"alice:s3cret").decode("ascii")
	session = StubSession(StubResponse(200))
	make_client(session)
	assert session.headers["Authorization"] == header


#============================================
def test_activity_url_and_params() -> None:
	"""
	Window dates expand to whole UTC days.
	"""
	client = make_client(StubSession(StubResponse(200)))
	assert client.build_activity_url() == "https://bwl.example.com/scr/api/activity"
	params = client.build_activity_params("COMMENTS", date(2015, 1, 1), date(2015, 1, 20))
	assert params == {
		"account": "acme",
		"type": "COMMENTS",
		"startDate": "2015-01-01T00:00:00.000-00:00",
		"endDate": "2015-01-20T23:59:59.999-00:00",
	}


#============================================
def test_unknown_record_type_raises() -> None:
	"""
	Only the four activity tokens are accepted.
	"""
	client = make_client(StubSession(StubResponse(200)))
	with pytest.raises(RuntimeError):
		client.build_activity_params("EVERYTHING", date(2015, 1, 1), date(2015, 1, 1))


#============================================
def test_open_activity_stream_returns_response_on_200() -> None:
	"""
	Successful GET streams the response back to the caller open.
	"""
	response = StubResponse(200)
	session = StubSession(response)
	client = make_client(session)
	result = client.open_activity_stream("LOGINS", date(2015, 1, 1), date(2015, 1, 2))
	assert result is response
	assert not response.closed
	url, kwargs = session.calls[0]
	assert url == "https://bwl.example.com/scr/api/activity"
	assert kwargs["params"]["type"] == "LOGINS"
	assert kwargs["stream"] is True
	assert kwargs["timeout"] is None
	assert client.api_usage_snapshot() == {
		"api_call_count": 1,
		"api_calls_by_type": {"LOGINS": 1},
	}


#============================================
def test_open_activity_stream_non_200_raises_and_closes() -> None:
	"""
	Non-200 answers close the response and raise with the status line.
	"""
	response = StubResponse(401, "Unauthorized")
	client = make_client(StubSession(response), timeout_seconds=15)
	with pytest.raises(activity_client.ActivityApiError) as error_info:
		client.open_activity_stream("ITEMS_VIEWED", date(2015, 1, 1), date(2015, 1, 2))
	assert error_info.value.status_code == 401
	assert "401 Unauthorized" in str(error_info.value)
	assert response.closed


#============================================
def test_transport_error_is_wrapped() -> None:
	"""
	Connection failures surface as ActivityApiError.
	"""
	session = StubSession(error=requests.ConnectionError("connection refused"))
	client = make_client(session)
	with pytest.raises(activity_client.ActivityApiError) as error_info:
		client.open_activity_stream("ITEMS_CHANGED", date(2015, 1, 1), date(2015, 1, 2))
	assert error_info.value.status_code is None
	assert isinstance(error_info.value.__cause__, requests.ConnectionError)


#============================================
def test_timeout_setting_is_passed_through() -> None:
	"""
	Positive timeout_seconds reaches the GET call.
	"""
	session = StubSession(StubResponse(200))
	client = make_client(session, timeout_seconds=30)
	client.open_activity_stream("LOGINS", date(2015, 1, 1), date(2015, 1, 1))
	assert session.calls[0][1]["timeout"] == 30
	client.close()
	assert session.closed
