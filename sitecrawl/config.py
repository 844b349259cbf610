import os
import logging
from pathlib import Path
from typing import Optional

try:
	from dotenv import load_dotenv
except ImportError:
	logging.warning("python-dotenv not available; using environment variables only")
else:
	loaded = load_dotenv()
	if not loaded and Path(".env").exists():
		raise RuntimeError(".env file present but failed to load")


def get_str_env(name: str, default: str) -> str:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	return raw


def get_int_env(name: str, default: int) -> int:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	try:
		return int(raw)
	except Exception:
		logging.exception("Invalid %s: %r", name, raw)
		return default


def get_optional_int_env(name: str) -> Optional[int]:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return None
	try:
		return int(raw)
	except Exception:
		logging.exception("Invalid %s: %r", name, raw)
		return None


def get_float_env(name: str, default: float) -> float:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	try:
		return float(raw)
	except Exception:
		logging.exception("Invalid %s: %r", name, raw)
		return default


def get_bool_env(name: str, default: bool) -> bool:
	raw = os.getenv(name)
	if raw is None or raw == "":
		return default
	value = raw.strip().lower()
	if value in ("1", "true", "yes", "on"):
		return True
	if value in ("0", "false", "no", "off"):
		return False
	logging.warning("Invalid %s: %r", name, raw)
	return default


USER_AGENT = get_str_env("USER_AGENT", "SiteCrawl/0.1")
HTTP_TIMEOUT = get_int_env("HTTP_TIMEOUT", 10)
CRAWL_WORKERS = get_int_env("CRAWL_WORKERS", 4)
CRAWL_DELAY = get_float_env("CRAWL_DELAY", 0.0)
CRAWL_QUEUE_SIZE = get_int_env("CRAWL_QUEUE_SIZE", 10000)


def crawl_max_urls() -> int:
	# 0 means unlimited
	return get_optional_int_env("CRAWL_MAX_URLS") or 0


def crawl_follow() -> str:
	return get_str_env("CRAWL_FOLLOW", "same-domain").strip().lower()


def crawl_progress_interval() -> float:
	return get_float_env("CRAWL_PROGRESS_INTERVAL", 30.0)


def cache_max_entries() -> Optional[int]:
	return get_optional_int_env("CRAWL_CACHE_MAX_ENTRIES")


def log_level() -> str:
	return get_str_env("LOG_LEVEL", "INFO").strip().upper()
