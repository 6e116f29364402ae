#!/usr/bin/env python3
import argparse
import contextlib
import sys
from datetime import date
from datetime import datetime

import requests
import rich.console

from actlib import activity_client
from actlib import date_windows
from actlib import output_files
from actlib import pipeline_settings
from actlib import record_mappers
from actlib.run_config import RunConfig


SEPARATOR_LINE = "-" * 78
RICH_CONSOLE = rich.console.Console()
ERROR_CONSOLE = rich.console.Console(stderr=True)

# options that clear one include_* flag
SKIP_OPTIONS = {
	"-sl": "include_logins",
	"-sc": "include_comments",
	"-su": "include_updates",
	"-sv": "include_views",
}
# options that take the next argument as their value
VALUE_OPTIONS = {
	"-d": ("output_dir", "a path"),
	"-s": ("start_date", "a date"),
	"-e": ("end_date", "a date"),
	"--settings": ("settings", "a file"),
}


#============================================
class UsageError(RuntimeError):
	"""
	Raised for command-line values that parse but cannot be used.
	"""


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[fetch_activity_data {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif "skip" in lower:
		style = "yellow"
	elif ("found" in lower) or (lower == "done"):
		style = "green"
	RICH_CONSOLE.print(line, style=style, markup=False, highlight=False, emoji=False, soft_wrap=True)


#============================================
def log_error(message: str) -> None:
	"""
	Print one error line to stderr.
	"""
	ERROR_CONSOLE.print(message, style="bold red", markup=False, highlight=False, emoji=False, soft_wrap=True)


#============================================
def build_usage_text(today: date | None = None) -> str:
	"""
	Build usage text with the built-in defaults filled in.
	"""
	today_value = today or date.today()
	default_start, default_end = date_windows.default_date_range(
		today_value,
		pipeline_settings.DEFAULT_LOOKBACK_DAYS,
	)
	lines = [
		"Usage: fetch_activity_data.py <user> <password> <account> [optional_arguments]",
		"Optional arguments:",
		"  -h               This help message",
		f"  -d <path>        Directory to store csv files, default={pipeline_settings.DEFAULT_OUTPUT_DIR}",
		"  -s <date>        Start date (YYYY-MM-DD), "
		+ f"default({pipeline_settings.DEFAULT_LOOKBACK_DAYS + 1} days)="
		+ date_windows.format_input_date(default_start),
		f"  -e <date>        End date, default(today)={date_windows.format_input_date(default_end)}",
		"  -sl              Skip login data",
		"  -sc              Skip comment data",
		"  -su              Skip update data",
		"  -sv              Skip view data",
		"  --settings <f>   YAML settings file, default=settings.yaml",
	]
	return "\n".join(lines)


#============================================
def exit_with_usage(message: str = "") -> None:
	"""
	Print optional error plus usage to stderr and exit with status 1.
	"""
	if message:
		ERROR_CONSOLE.print(f"ERROR: {message}", markup=False, highlight=False, emoji=False, soft_wrap=True)
	ERROR_CONSOLE.print(build_usage_text(), markup=False, highlight=False, emoji=False, soft_wrap=True)
	sys.exit(1)


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command-line arguments, exiting with usage on any problem.

	The first three arguments are user, password and account by position,
	even when one of them starts with a dash. The rest is scanned left to
	right and every option must match a whole token, so glued values such
	as -dout and prefixes such as --set are unknown options.
	"""
	tokens = list(sys.argv[1:] if argv is None else argv)
	if len(tokens) < 3:
		exit_with_usage("missing command line arguments, 3 arguments required")
	args = argparse.Namespace(
		user=tokens[0],
		password=tokens[1],
		account=tokens[2],
		output_dir=None,
		start_date=None,
		end_date=None,
		include_logins=True,
		include_comments=True,
		include_updates=True,
		include_views=True,
		settings="settings.yaml",
	)
	index = 3
	while index < len(tokens):
		token = tokens[index]
		index += 1
		if token == "-h":
			exit_with_usage()
		elif token in SKIP_OPTIONS:
			setattr(args, SKIP_OPTIONS[token], False)
		elif token in VALUE_OPTIONS:
			dest, value_name = VALUE_OPTIONS[token]
			if index >= len(tokens):
				exit_with_usage(f"option {token} requires {value_name}")
			setattr(args, dest, tokens[index])
			index += 1
		elif token.startswith("-"):
			exit_with_usage(f"unknown command line option {token}")
		else:
			exit_with_usage(f"unexpected command line argument {token}")
	return args


#============================================
def build_run_config(
	args: argparse.Namespace,
	settings: dict,
	today: date | None = None,
) -> RunConfig:
	"""
	Merge parsed arguments with settings into one RunConfig.
	"""
	today_value = today or date.today()
	lookback_days = pipeline_settings.get_lookback_days(settings)
	default_start, default_end = date_windows.default_date_range(today_value, lookback_days)
	start_text = args.start_date or date_windows.format_input_date(default_start)
	end_text = args.end_date or date_windows.format_input_date(default_end)
	try:
		start_date = date_windows.parse_input_date(start_text)
		end_date = date_windows.parse_input_date(end_text)
	except ValueError as error:
		raise UsageError("could not parse given start or end date") from error
	if start_date > end_date:
		raise UsageError(
			f"start date {start_text} is after end date {end_text}"
		)
	output_timezone = pipeline_settings.get_setting_str(settings, ["output", "timezone"], "")
	# fail on unknown zone names before any file or network work
	record_mappers.resolve_output_timezone(output_timezone)
	timeout_seconds = pipeline_settings.get_setting_int(settings, ["activity", "timeout_seconds"], 0)
	run_config = RunConfig(
		username=args.user,
		password=args.password,
		account=args.account,
		output_dir=args.output_dir or pipeline_settings.get_output_dir(settings),
		start_date=start_date,
		end_date=end_date,
		include_logins=args.include_logins,
		include_comments=args.include_comments,
		include_updates=args.include_updates,
		include_views=args.include_views,
		server=pipeline_settings.get_activity_server(settings),
		window_days=pipeline_settings.get_window_days(settings),
		timeout_seconds=max(timeout_seconds, 0),
		csv_quoting=pipeline_settings.get_setting_bool(settings, ["output", "csv_quoting"], False),
		output_timezone=output_timezone,
	)
	return run_config


#============================================
def print_banner(run_config: RunConfig) -> None:
	"""
	Print the run banner before any network call.
	"""
	log_step(
		f"User statistics for account {run_config.account} "
		+ f"requested by user {run_config.username}"
	)
	log_step(f"Will store files in directory: {run_config.output_dir}")
	log_step(
		"Period: "
		+ f"{date_windows.format_input_date(run_config.start_date)} ... "
		+ f"{date_windows.format_input_date(run_config.end_date)}"
	)
	log_step(SEPARATOR_LINE)


#============================================
def run_extraction(run_config: RunConfig, client) -> dict[str, int]:
	"""
	Fetch every window for every enabled record type and write csv rows.

	Returns total row counts keyed by layout label. Any API or mapping error
	propagates at once; files opened so far are flushed and closed first.
	"""
	layouts = run_config.enabled_layouts()
	mappers = {
		layout.label: record_mappers.ActivityRecordMapper(layout, run_config.output_timezone)
		for layout in layouts
	}
	totals = {layout.label: 0 for layout in layouts}
	output_dir = output_files.prepare_output_dir(run_config.output_dir)

	with contextlib.ExitStack() as stack:
		outputs = {}
		for layout in layouts:
			output_file = output_files.ActivityOutputFile(
				output_dir,
				layout,
				csv_quoting=run_config.csv_quoting,
			)
			outputs[layout.label] = stack.enter_context(output_file)

		windows = date_windows.iter_date_windows(
			run_config.start_date,
			run_config.end_date,
			run_config.window_days,
		)
		for window_start, window_end in windows:
			log_step(
				"Retrieving info for "
				+ f"{date_windows.format_input_date(window_start)} ... "
				+ f"{date_windows.format_input_date(window_end)}"
			)
			for layout in layouts:
				output_file = outputs[layout.label]
				response = client.open_activity_stream(layout.api_type, window_start, window_end)
				rows_before = output_file.row_count
				try:
					with response:
						mappers[layout.label].write_response(response, output_file)
				finally:
					# rows written before a mapping failure are reported too
					count = output_file.row_count - rows_before
					log_step(f" => {count} {layout.label} records found")
					totals[layout.label] += count

	log_step(SEPARATOR_LINE)
	for layout in layouts:
		log_step(
			f"Found {totals[layout.label]} {layout.label} records "
			+ f"and stored in {layout.file_name}"
		)
	return totals


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Run one extraction and exit non-zero on the first failure.
	"""
	args = parse_args(argv)
	try:
		settings, settings_path = pipeline_settings.load_settings(args.settings)
		run_config = build_run_config(args, settings)
	except RuntimeError as error:
		exit_with_usage(str(error))
	if settings:
		log_step(f"Using settings file: {settings_path}")
	print_banner(run_config)

	client = activity_client.ActivityClient(
		run_config.server,
		run_config.account,
		run_config.username,
		run_config.password,
		timeout_seconds=run_config.timeout_seconds,
	)
	try:
		run_extraction(run_config, client)
	except activity_client.ActivityApiError as error:
		log_error(str(error))
		log_error("Run stopped; output files keep the rows written before the failure.")
		sys.exit(1)
	except requests.RequestException as error:
		log_error(f"Error reading activity API response: {error}")
		sys.exit(1)
	except record_mappers.RecordMappingError as error:
		log_error(f"Failed to map activity records: {error}")
		sys.exit(1)
	except OSError as error:
		log_error(f"Failed to write output files: {error}")
		sys.exit(1)
	finally:
		client.close()

	usage = client.api_usage_snapshot()
	log_step(f"Activity API usage: calls={usage.get('api_call_count', 0)}")
	log_step("DONE")


if __name__ == "__main__":
	main()
