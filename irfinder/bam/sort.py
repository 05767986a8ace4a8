"""Optional novosort stage producing a sorted, indexed fragment BAM.

novosort is licensed software, so it is treated as a capability: a run never
fails because it is missing or its license expired, it falls back to
unsorted output.
"""
import collections
import datetime
import os
import re

from irfinder.errors import CmdNotFound
from irfinder.log import logger
from irfinder.pipeline import config_utils, graph

UNAVAILABLE = "unavailable"
INELIGIBLE = "ineligible"
AVAILABLE = "available"

LICENSE_NAME = "novoalign.lic"
SORTED_BAM = "sorted.frag.bam"
SORT_LOG = "sorted.frag.log"

SortCheck = collections.namedtuple("SortCheck", ["state", "path", "reason"])

_expiry_date = re.compile(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})")


def check_capability(sys_config, today=None):
    """Decide whether novosort can be used for this run.

    UNAVAILABLE when the binary is not found, INELIGIBLE when its license is
    missing, unreadable or expired, otherwise AVAILABLE.
    """
    if today is None:
        today = datetime.date.today()
    try:
        novosort = config_utils.get_program("novosort", sys_config)
    except CmdNotFound as e:
        return SortCheck(UNAVAILABLE, None, str(e))
    license_file = (config_utils.get_resources("novosort", sys_config).get("license") or
                    os.path.join(os.path.dirname(os.path.realpath(novosort)), LICENSE_NAME))
    if not os.path.isfile(license_file):
        return SortCheck(INELIGIBLE, novosort, "license file %s not found" % license_file)
    expiry = license_expiry(license_file)
    if expiry is None:
        return SortCheck(INELIGIBLE, novosort,
                         "could not find an expiry date in %s" % license_file)
    if expiry < today:
        return SortCheck(INELIGIBLE, novosort, "license expired on %s" % expiry.isoformat())
    return SortCheck(AVAILABLE, novosort, "")

def license_expiry(license_file):
    """Expiry date from the first line mentioning it, as YYYY-MM-DD or YYYY/MM/DD.
    """
    with open(license_file, errors="replace") as in_handle:
        for line in in_handle:
            if "expir" not in line.lower():
                continue
            match = _expiry_date.search(line)
            if match:
                try:
                    return datetime.date(*[int(x) for x in match.groups()])
                except ValueError:
                    return None
    return None

def choose(config, sys_config, today=None):
    """Return the novosort path to use, or None to write unsorted output.
    """
    if not config.sort:
        logger.info("Sorting disabled with -u, writing unsorted fragment BAM.")
        return None
    check = check_capability(sys_config, today)
    if check.state != AVAILABLE:
        logger.warning("novosort is %s (%s); writing unsorted fragment BAM instead."
                    % (check.state, check.reason))
        return None
    return check.path

def sort_cmd(novosort, config):
    return [novosort, "-c", config.threads, "-m", "%sM" % config.sort_memory,
            "-t", config.out_dir, "-i", "-o", os.path.join(config.out_dir, SORTED_BAM), "-"]

def sort_stage(novosort, config):
    """Detached stage; completion is observed through the sort barrier.
    """
    return graph.Stage("novosort", sort_cmd(novosort, config), stdin=graph.Pipe(),
                       stderr=graph.File(os.path.join(config.out_dir, SORT_LOG), append=True),
                       detached=True)
