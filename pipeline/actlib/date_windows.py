from datetime import date
from datetime import datetime
from datetime import timedelta


INPUT_DATE_FORMAT = "%Y-%m-%d"


#============================================
def parse_input_date(text: str) -> date:
	"""
	Parse a YYYY-MM-DD command-line date.
	"""
	return datetime.strptime(text.strip(), INPUT_DATE_FORMAT).date()


#============================================
def format_input_date(value: date) -> str:
	"""
	Render a date in the same YYYY-MM-DD form used on the command line.
	"""
	return value.strftime(INPUT_DATE_FORMAT)


#============================================
def default_date_range(today: date, lookback_days: int) -> tuple[date, date]:
	"""
	Return the default (start, end) pair ending today.
	"""
	return today - timedelta(days=lookback_days), today


#============================================
def iter_date_windows(start: date, end: date, window_days: int = 20):
	"""
	Yield inclusive (window_start, window_end) pairs covering start..end.

	Each window spans at most window_days calendar days and the next one
	begins the day after, so windows never overlap and leave no gaps.
	An empty range (start after end) yields nothing.
	"""
	if window_days < 1:
		raise RuntimeError(f"window days must be >= 1, got {window_days}")
	span = timedelta(days=window_days - 1)
	one_day = timedelta(days=1)
	window_start = start
	while window_start <= end:
		window_end = min(window_start + span, end)
		yield window_start, window_end
		window_start = window_end + one_day
