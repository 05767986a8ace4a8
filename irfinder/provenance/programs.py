"""Identify and check versions of the external programs used in a run.
"""
import subprocess

from irfinder.errors import HostEnvironmentError
from irfinder.pipeline import config_utils


def get_star(config, sys_config):
    """Aligner from the command line override, falling back to configuration and PATH.
    """
    if config.star:
        return config.star
    return config_utils.get_program("STAR", sys_config)

def _parse_star_version(stdout):
    for line in stdout.splitlines():
        line = line.strip()
        if "STAR_" in line:
            return line.split("STAR_")[1].strip()
        elif line:
            return line
    return ""

def star_version(star_path):
    """Query the aligner for its version, failing if it does not answer cleanly.
    """
    try:
        subp = subprocess.run([star_path, "--version"], stdout=subprocess.PIPE,
                              stderr=subprocess.STDOUT)
    except OSError as e:
        raise HostEnvironmentError("Could not run STAR at %s: %s" % (star_path, e))
    stdout = subp.stdout.decode("utf-8", errors="replace")
    if subp.returncode != 0:
        raise HostEnvironmentError("STAR at %s failed to report a version (exit status %s). "
                                   "IRFinder needs a working STAR 2.4 or later.\n%s"
                                   % (star_path, subp.returncode, stdout.strip()))
    return _parse_star_version(stdout)
