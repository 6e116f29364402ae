from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError


CSV_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


#============================================
class RecordMappingError(RuntimeError):
	"""
	Raised when an activity payload or record cannot be turned into a row.
	"""


#============================================
@dataclass(frozen=True)
class ColumnRule:
	header: str
	key: str = ""
	required: bool = True
	timestamp: bool = False
	derive: Callable[[dict], str] | None = None


#============================================
@dataclass(frozen=True)
class RecordLayout:
	label: str
	api_type: str
	file_name: str
	columns: tuple[ColumnRule, ...]

	@property
	def header(self) -> list[str]:
		return [column.header for column in self.columns]


#============================================
def value_text(value) -> str:
	"""
	Render one JSON value as csv text.
	"""
	if value is None:
		return ""
	if isinstance(value, bool):
		return "true" if value else "false"
	return str(value)


#============================================
def optional_text(record: dict, key: str) -> str:
	"""
	Read an optional key, empty string when absent.
	"""
	return value_text(record.get(key))


#============================================
def parse_activity_timestamp(text: str) -> datetime:
	"""
	Parse ISO-8601 API timestamps like 2015-03-01T10:00:00.000+00:00.
	"""
	if not isinstance(text, str) or not text.strip():
		raise ValueError(f"empty timestamp: {text!r}")
	return datetime.fromisoformat(text.strip().replace("Z", "+00:00"))


#============================================
def resolve_output_timezone(name: str) -> ZoneInfo | None:
	"""
	Resolve optional IANA zone for timestamp rendering.
	"""
	name = (name or "").strip()
	if not name:
		return None
	try:
		return ZoneInfo(name)
	except ZoneInfoNotFoundError as error:
		raise RuntimeError(f"Unknown output timezone: {name}") from error


#============================================
def format_csv_time(text: str, tz_value: ZoneInfo | None = None) -> str:
	"""
	Render an API timestamp as YYYY-MM-DD HH:MM:SS.

	Without tz_value the wall-clock time is kept and the offset dropped.
	"""
	parsed = parse_activity_timestamp(text)
	if tz_value is not None and parsed.tzinfo is not None:
		parsed = parsed.astimezone(tz_value)
	return parsed.strftime(CSV_TIME_FORMAT)


#============================================
def comment_item_name(record: dict) -> str:
	"""
	Pick processName or decisionDiagramName depending on comment type.
	"""
	comment_type = optional_text(record, "type")
	if comment_type.startswith("PROCESS"):
		return optional_text(record, "processName")
	if comment_type.startswith("DECISION"):
		return optional_text(record, "decisionDiagramName")
	return ""


#============================================
def comment_category(record: dict) -> str:
	"""
	Combine type and subType as TYPE.SUBTYPE when subType is present.
	"""
	comment_type = optional_text(record, "type")
	if "subType" in record:
		return f"{comment_type}.{optional_text(record, 'subType')}"
	return comment_type


LOGIN_LAYOUT = RecordLayout(
	label="login",
	api_type="LOGINS",
	file_name="logins.txt",
	columns=(
		ColumnRule("Time", "time", timestamp=True),
		# endTime is missing while the user is still logged in
		ColumnRule("EndTime", "endTime", required=False, timestamp=True),
		ColumnRule("Type", "type"),
		ColumnRule("User", "user"),
	),
)

COMMENT_LAYOUT = RecordLayout(
	label="comment",
	api_type="COMMENTS",
	file_name="comments.txt",
	columns=(
		ColumnRule("Time", "timeStamp", timestamp=True),
		ColumnRule("Space", "spaceName"),
		ColumnRule("Name", derive=comment_item_name),
		ColumnRule("Type", "activityType"),
		ColumnRule("Activity", "activityName"),
		ColumnRule("User", "user"),
		ColumnRule("IsReply", "isReply", required=False),
		ColumnRule("Category", derive=comment_category),
	),
)

UPDATE_LAYOUT = RecordLayout(
	label="update",
	api_type="ITEMS_CHANGED",
	file_name="updates.txt",
	columns=(
		ColumnRule("Time", "timeStamp", timestamp=True),
		ColumnRule("Space", "spaceName"),
		ColumnRule("Name", "processName", required=False),
		ColumnRule("Type", "type"),
		ColumnRule("User", "user"),
	),
)

VIEW_LAYOUT = RecordLayout(
	label="view",
	api_type="ITEMS_VIEWED",
	file_name="views.txt",
	columns=(
		ColumnRule("Time", "timeStamp", timestamp=True),
		ColumnRule("Space", "spaceName"),
		ColumnRule("Name", "itemName"),
		ColumnRule("Type", "itemType"),
		ColumnRule("User", "user"),
	),
)

ALL_LAYOUTS = (LOGIN_LAYOUT, COMMENT_LAYOUT, UPDATE_LAYOUT, VIEW_LAYOUT)


#============================================
class ActivityRecordMapper:
	"""
	Turn activity API records into csv rows for one record layout.
	"""

	def __init__(self, layout: RecordLayout, output_timezone: str = ""):
		self.layout = layout
		self.tz_value = resolve_output_timezone(output_timezone)

	#============================================
	def read_records(self, response) -> list:
		"""
		Parse the response body once and return its records array.
		"""
		try:
			payload = response.json()
		except ValueError as error:
			raise RecordMappingError(
				f"{self.layout.label} response is not valid JSON: {error}"
			) from error
		if not isinstance(payload, dict) or "records" not in payload:
			raise RecordMappingError(
				f"{self.layout.label} response has no 'records' field"
			)
		records = payload["records"]
		if not isinstance(records, list):
			raise RecordMappingError(
				f"{self.layout.label} response 'records' is not a list"
			)
		return records

	#============================================
	def map_record(self, record: dict, index: int = 0) -> list[str]:
		"""
		Extract the layout columns from one record.
		"""
		if not isinstance(record, dict):
			raise RecordMappingError(
				f"{self.layout.label} record {index} is not a JSON object"
			)
		fields = []
		for column in self.layout.columns:
			if column.derive is not None:
				fields.append(column.derive(record))
				continue
			if column.key not in record:
				if column.required:
					raise RecordMappingError(
						f"{self.layout.label} record {index} is missing required field '{column.key}'"
					)
				fields.append("")
				continue
			value = record[column.key]
			if column.timestamp and value is not None:
				try:
					fields.append(format_csv_time(value, self.tz_value))
				except (TypeError, ValueError) as error:
					raise RecordMappingError(
						f"{self.layout.label} record {index} has unparsable "
						+ f"{column.key} {value!r}: {error}"
					) from error
				continue
			fields.append(value_text(value))
		return fields

	#============================================
	def write_response(self, response, output_file) -> int:
		"""
		Write one row per record in array order and return the row count.
		"""
		records = self.read_records(response)
		count = 0
		for index, record in enumerate(records):
			output_file.write_row(self.map_record(record, index))
			count += 1
		return count
