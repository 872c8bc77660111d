import logging
import sys
import os
from logging.handlers import RotatingFileHandler
from datetime import datetime

from shp_loader import config

_LOGGER_NAME = "shp_loader"
_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_MAX_LINES = 5000
_BACKUP_COUNT = 20

class LineRotatingFileHandler(RotatingFileHandler):
	"""
	Rotates log after a maximum number of lines, not bytes.
	"""
	def __init__(self, filename, maxLines, backupCount=0, encoding=None):
		super().__init__(filename, maxBytes=0, backupCount=backupCount, encoding=encoding)
		self.maxLines = maxLines
		self.lineCount = 0
		self._count_existing_lines()

	def _count_existing_lines(self):
		try:
			with open(self.baseFilename, 'r', encoding=self.encoding or 'utf-8') as f:
				self.lineCount = sum(1 for _ in f)
		except FileNotFoundError:
			self.lineCount = 0

	def emit(self, record):
		super().emit(record)
		self.lineCount += 1
		if self.lineCount >= self.maxLines:
			self.doRollover()
			self.lineCount = 0

def _has_handler(logger, handler_type):
	return any(type(h) is handler_type for h in logger.handlers)

def setup_logger(verbose=False, log_dir=None):
	"""
	Set up the project logger: stdout always, plus a timestamped file under
	log_dir (or SHP_LOADER_LOG_DIR) when one is configured.
	The file rotates after 5000 lines and keeps the last 20 logs.
	Safe to call more than once; handlers are only added the first time.
	"""
	logger = logging.getLogger(_LOGGER_NAME)
	level = logging.DEBUG if verbose else logging.INFO
	logger.setLevel(level)

	if not _has_handler(logger, logging.StreamHandler):
		ch = logging.StreamHandler(sys.stdout)
		ch.setFormatter(logging.Formatter(_FORMAT))
		logger.addHandler(ch)

	log_dir = log_dir or config.LOG_DIR
	if log_dir and not _has_handler(logger, LineRotatingFileHandler):
		os.makedirs(log_dir, exist_ok=True)
		basename = f"shp_loader_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
		fh = LineRotatingFileHandler(os.path.join(log_dir, basename), maxLines=_MAX_LINES, backupCount=_BACKUP_COUNT, encoding="utf-8")
		fh.setFormatter(logging.Formatter(_FORMAT))
		logger.addHandler(fh)

	for handler in logger.handlers:
		handler.setLevel(level)
	return logger

def get_logger(name=None):
	"""
	Get the shared project logger, or a child of it when name is given.
	"""
	if name:
		return logging.getLogger(f"{_LOGGER_NAME}.{name}")
	return logging.getLogger(_LOGGER_NAME)
