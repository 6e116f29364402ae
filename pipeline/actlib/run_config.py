from dataclasses import dataclass
from datetime import date

from actlib import record_mappers


#============================================
@dataclass(frozen=True)
class RunConfig:
	"""
	Immutable settings for one extraction run.
	"""

	username: str
	password: str
	account: str
	output_dir: str
	start_date: date
	end_date: date
	include_logins: bool = True
	include_comments: bool = True
	include_updates: bool = True
	include_views: bool = True
	server: str = "https://www.blueworkslive.com"
	window_days: int = 20
	timeout_seconds: int = 0
	csv_quoting: bool = False
	output_timezone: str = ""

	#============================================
	def enabled_layouts(self) -> list[record_mappers.RecordLayout]:
		"""
		Return layouts for enabled record types in fixed processing order.
		"""
		flags = {
			"login": self.include_logins,
			"comment": self.include_comments,
			"update": self.include_updates,
			"view": self.include_views,
		}
		return [layout for layout in record_mappers.ALL_LAYOUTS if flags[layout.label]]
