import os
import sys
from datetime import date
from datetime import timedelta

import pytest


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PIPELINE_DIR = os.path.join(REPO_ROOT, "pipeline")
if PIPELINE_DIR not in sys.path:
	sys.path.insert(0, PIPELINE_DIR)

from actlib import date_windows


#============================================
def test_single_day_range_yields_one_window() -> None:
	"""
	Start equal to end should give exactly that one day.
	"""
	day = date(2015, 1, 1)
	windows = list(date_windows.iter_date_windows(day, day))
	assert windows == [(day, day)]


#============================================
def test_46_day_range_yields_three_windows() -> None:
	"""
	2015-01-01..2015-02-15 splits into three windows of at most 20 days.
	"""
	windows = list(date_windows.iter_date_windows(date(2015, 1, 1), date(2015, 2, 15)))
	assert windows == [
		(date(2015, 1, 1), date(2015, 1, 20)),
		(date(2015, 1, 21), date(2015, 2, 9)),
		(date(2015, 2, 10), date(2015, 2, 15)),
	]


#============================================
@pytest.mark.parametrize(
	"start, end",
	[
		(date(2015, 1, 1), date(2015, 1, 21)),
		(date(2015, 1, 1), date(2015, 1, 22)),
		(date(2015, 2, 20), date(2015, 3, 5)),
		(date(2016, 2, 1), date(2016, 12, 31)),
		(date(2014, 12, 15), date(2015, 3, 24)),
	],
)
def test_windows_are_contiguous_and_cover_range(start, end) -> None:
	"""
	Windows must be ordered, gap-free, non-overlapping and cover start..end.
	"""
	windows = list(date_windows.iter_date_windows(start, end))
	assert windows[0][0] == start
	assert windows[-1][1] == end
	covered_days = 0
	for index, (window_start, window_end) in enumerate(windows):
		assert window_start <= window_end
		assert (window_end - window_start).days < 20
		covered_days += (window_end - window_start).days + 1
		if index > 0:
			assert window_start == windows[index - 1][1] + timedelta(days=1)
	assert covered_days == (end - start).days + 1


#============================================
def test_start_after_end_yields_nothing() -> None:
	"""
	An inverted range produces no windows.
	"""
	assert list(date_windows.iter_date_windows(date(2015, 2, 1), date(2015, 1, 1))) == []


#============================================
def test_custom_window_days() -> None:
	"""
	One-day windows give one window per calendar day.
	"""
	windows = list(date_windows.iter_date_windows(date(2015, 1, 1), date(2015, 1, 3), 1))
	assert [window[0] for window in windows] == [date(2015, 1, 1), date(2015, 1, 2), date(2015, 1, 3)]
	assert all(window[0] == window[1] for window in windows)


#============================================
def test_21_day_windows_end_twenty_days_after_start() -> None:
	"""
	window_days=21 gives windows with end - start == 20 days.
	"""
	windows = list(date_windows.iter_date_windows(date(2015, 1, 1), date(2015, 2, 15), 21))
	assert windows == [
		(date(2015, 1, 1), date(2015, 1, 21)),
		(date(2015, 1, 22), date(2015, 2, 11)),
		(date(2015, 2, 12), date(2015, 2, 15)),
	]


#============================================
def test_negative_window_days_raises() -> None:
	"""
	Window size below one day is rejected.
	"""
	with pytest.raises(RuntimeError):
		list(date_windows.iter_date_windows(date(2015, 1, 1), date(2015, 1, 3), 0))


#============================================
def test_default_date_range_and_parsing() -> None:
	"""
	Default range ends today and starts lookback days earlier.
	"""
	start, end = date_windows.default_date_range(date(2015, 4, 10), 99)
	assert end == date(2015, 4, 10)
	assert start == date(2015, 1, 1)
	assert date_windows.parse_input_date("2015-01-01") == date(2015, 1, 1)
	assert date_windows.format_input_date(date(2015, 1, 1)) == "2015-01-01"
	with pytest.raises(ValueError):
		date_windows.parse_input_date("01/01/2015")
