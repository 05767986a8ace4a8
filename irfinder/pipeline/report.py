"""Run banner written before execution, and the final warnings check.
"""
import datetime
import getpass
import os
import socket

from irfinder.log import logger_banner
from irfinder.pipeline import clargs, config_utils, run_info
from irfinder.provenance import do

WARNINGS = "warnings"


def _get_user():
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"

def banner_lines(config, start=None):
    start = start or datetime.datetime.now()
    lines = [clargs.version_str(),
             "Start: %s" % start.strftime("%Y-%m-%d %H:%M:%S"),
             "Mode: %s" % config.mode,
             "User: %s@%s" % (_get_user(), socket.gethostname()),
             "Working directory: %s" % os.getcwd(),
             "Reference: %s" % config.reference]
    if run_info.is_build(config):
        if config.url:
            lines.append("Source: %s" % config.url)
    else:
        label = "FastQ" if config.mode == "FastQ" else "BAM"
        lines.extend("%s: %s" % (label, x) for x in config.inputs)
        lines.append("Output directory: %s" % config.out_dir)
    return lines

def write_banner(config, start=None):
    for line in banner_lines(config, start):
        logger_banner.info(line)

def check_warnings(config, sys_config):
    """Let the warnings checker inspect the produced results; its output goes to the run log.
    """
    warnings = config_utils.get_program(WARNINGS, sys_config)
    do.run([warnings, config.out_dir], "Checking results for warnings", log_stdout=True)
