"""Utility functionality for logging.

Every run appends to two files in its output directory: irfinder.stdout holds
the banner, progress, command lines and collaborator output; irfinder.stderr
collects warnings and stage error streams. The terminal only receives the
banner channel.
"""
import os
import sys

import logbook

LOG_NAME = "irfinder"
STDOUT_LOG = "irfinder.stdout"
STDERR_LOG = "irfinder.stderr"

logger = logbook.Logger(LOG_NAME)
logger_cl = logbook.Logger(LOG_NAME + "-commands")
logger_stdout = logbook.Logger(LOG_NAME + "-stdout")
logger_banner = logbook.Logger(LOG_NAME + "-banner")

def get_log_files(out_dir):
    return (os.path.join(out_dir, STDOUT_LOG), os.path.join(out_dir, STDERR_LOG))

def _is_banner(record, _):
    return record.channel == LOG_NAME + "-banner"

def _is_cl(record, _):
    return record.channel == LOG_NAME + "-commands"

def _not_cl(record, handler):
    return not _is_cl(record, handler)

class CloseableNestedSetup(logbook.NestedSetup):
    def close(self):
        for obj in self.objects:
            if hasattr(obj, "close"):
                obj.close()

def _create_log_handler(out_dir, config):
    logbook.set_datetime_format("utc")
    include_time = config.get("log", {}).get("include_time", True)
    format_str = "".join(["[{record.time:%Y-%m-%dT%H:%MZ}] " if include_time else "",
                          "{record.message}"])
    stdout_log, stderr_log = get_log_files(out_dir)
    handlers = [logbook.NullHandler()]
    handlers.append(logbook.FileHandler(stdout_log, mode="a", format_string=format_str,
                                        level="DEBUG", bubble=True))
    handlers.append(logbook.FileHandler(stderr_log, mode="a", format_string=format_str,
                                        level="WARNING", bubble=True, filter=_not_cl))
    handlers.append(logbook.StreamHandler(sys.stdout, format_string="{record.message}",
                                          level="INFO", filter=_is_banner, bubble=True))
    return CloseableNestedSetup(handlers)

def setup_run_logging(out_dir, config=None):
    """Direct logging for a run into its output directory.

    Returns the pushed handler setup; callers close it when the run finishes.
    """
    if config is None: config = {}
    handler = _create_log_handler(out_dir, config)
    handler.push_application()
    return handler

def teardown_run_logging(handler):
    handler.pop_application()
    handler.close()
