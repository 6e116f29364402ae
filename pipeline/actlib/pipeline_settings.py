import os

import yaml


DEFAULT_SERVER = "https://www.blueworkslive.com"
DEFAULT_OUTPUT_DIR = "./userstats"
DEFAULT_WINDOW_DAYS = 20
DEFAULT_LOOKBACK_DAYS = 99
BOOLEAN_WORDS = {
	"1": True,
	"true": True,
	"yes": True,
	"on": True,
	"0": False,
	"false": False,
	"no": False,
	"off": False,
}


#============================================
class SettingsError(RuntimeError):
	"""
	Raised when the settings file or one of its values cannot be used.
	"""


#============================================
def resolve_settings_path(path_text: str) -> str:
	"""
	Resolve a relative settings path.

	The current directory wins; otherwise the path is taken relative to the
	checkout holding pipeline/, so settings.yaml beside pyproject.toml is
	found from any working directory.
	"""
	if os.path.isabs(path_text):
		return path_text
	cwd_candidate = os.path.abspath(path_text)
	if os.path.isfile(cwd_candidate):
		return cwd_candidate
	actlib_dir = os.path.dirname(os.path.abspath(__file__))
	checkout_dir = os.path.dirname(os.path.dirname(actlib_dir))
	return os.path.join(checkout_dir, path_text)


#============================================
def load_settings(path_text: str) -> tuple[dict, str]:
	"""
	Load the settings mapping; a missing or empty file gives {}.
	"""
	resolved_path = resolve_settings_path(path_text)
	if not os.path.isfile(resolved_path):
		return {}, resolved_path
	with open(resolved_path, "r", encoding="utf-8") as handle:
		try:
			data = yaml.safe_load(handle)
		except yaml.YAMLError as error:
			raise SettingsError(f"Settings file is not valid YAML: {resolved_path}") from error
	if data is None:
		return {}, resolved_path
	if not isinstance(data, dict):
		raise SettingsError(f"Settings file must contain a mapping: {resolved_path}")
	return data, resolved_path


#============================================
def lookup_setting(settings: dict, keys: list[str]):
	"""
	Follow keys through nested mappings; None when any step is absent.
	"""
	current = settings
	for key in keys:
		if not isinstance(current, dict):
			return None
		current = current.get(key)
	return current


#============================================
def invalid_setting(kind: str, keys: list[str], value) -> SettingsError:
	return SettingsError(f"Invalid {kind} for setting {'.'.join(keys)}: {value!r}")


#============================================
def get_setting_str(settings: dict, keys: list[str], default_value: str) -> str:
	value = lookup_setting(settings, keys)
	if value is None:
		return default_value
	return str(value).strip()


#============================================
def get_setting_int(settings: dict, keys: list[str], default_value: int) -> int:
	"""
	Read an integer; YAML booleans and non-numeric text are rejected.
	"""
	value = lookup_setting(settings, keys)
	if value is None:
		return default_value
	if isinstance(value, bool):
		raise invalid_setting("integer", keys, value)
	try:
		return int(value)
	except (TypeError, ValueError) as error:
		raise invalid_setting("integer", keys, value) from error


#============================================
def get_setting_bool(settings: dict, keys: list[str], default_value: bool) -> bool:
	"""
	Read a boolean from a YAML bool, an integer, or a yes/no style word.
	"""
	value = lookup_setting(settings, keys)
	if value is None:
		return default_value
	if isinstance(value, (bool, int)):
		return bool(value)
	word = str(value).strip().lower()
	if word not in BOOLEAN_WORDS:
		raise invalid_setting("boolean", keys, value)
	return BOOLEAN_WORDS[word]


#============================================
def get_activity_server(settings: dict) -> str:
	"""
	Resolve API server base URL with trailing slash removed.
	"""
	value = get_setting_str(settings, ["activity", "server"], DEFAULT_SERVER)
	return (value or DEFAULT_SERVER).rstrip("/")


#============================================
def get_output_dir(settings: dict) -> str:
	"""
	Resolve default output directory for csv files.
	"""
	value = get_setting_str(settings, ["activity", "output_dir"], DEFAULT_OUTPUT_DIR)
	return value or DEFAULT_OUTPUT_DIR


#============================================
def get_window_days(settings: dict) -> int:
	"""
	Calendar days covered by each request window, both ends included.

	A window starting 01-01 ends 01-20 with 20 and 01-21 with 21.
	Must be at least 1.
	"""
	value = get_setting_int(settings, ["activity", "window_days"], DEFAULT_WINDOW_DAYS)
	if value < 1:
		raise SettingsError(f"Invalid settings: activity.window_days must be >= 1, got {value}")
	return value


#============================================
def get_lookback_days(settings: dict) -> int:
	"""
	Resolve how many days before today the default start date lies.
	"""
	value = get_setting_int(settings, ["activity", "lookback_days"], DEFAULT_LOOKBACK_DAYS)
	if value < 0:
		raise SettingsError(f"Invalid settings: activity.lookback_days must be >= 0, got {value}")
	return value
