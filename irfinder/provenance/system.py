"""Identify memory and core information for the local machine.

Used to pick a safe thread count and memory budget for the aligner and sort
stages, and to refuse runs on machines too small to hold a STAR genome index.
"""
import collections

import psutil

from irfinder.errors import HostEnvironmentError
from irfinder.log import logger
from irfinder.provenance import programs

HostResources = collections.namedtuple("HostResources", ["memory", "threads"])

# STAR needs roughly 30Gb for a human genome index
MIN_ALIGNER_MEMORY = 32000
NO_ALIGNER_MODES = ("BAM", "BuildRefDownload")
# memory held back from sorting, for the analysis filter alone or with STAR
SORT_RESERVE = {"BAM": 6000, "default": 36000}
SORT_MEMORY_RANGE = (500, 10000)
CPUINFO = "/proc/cpuinfo"

def machine_info(cpuinfo_file=CPUINFO):
    """Retrieve total memory (Mb) and core count for the current machine.
    """
    mem_kb = psutil.virtual_memory().total // 1024
    threads = _read_core_count(cpuinfo_file)
    host = HostResources(int(mem_kb // 1024), threads)
    logger.debug("Host resources: %sMb memory, %s threads" % (host.memory, host.threads))
    return host

def _read_core_count(cpuinfo_file):
    try:
        with open(cpuinfo_file) as in_handle:
            threads = count_cores(in_handle)
    except (IOError, OSError):
        threads = 0
    if not threads:
        threads = psutil.cpu_count(logical=False) or psutil.cpu_count() or 1
    return threads

def count_cores(cpuinfo_lines):
    """Count physical cores from /proc/cpuinfo contents.

    Hyperthreads share a (physical id, core id) pair so are counted once. When
    no such pairs are reported, falls back to the number of logical processors.
    """
    cores = set()
    processors = 0
    physical_id = None
    for line in cpuinfo_lines:
        if ":" not in line:
            continue
        key, value = [x.strip() for x in line.split(":", 1)]
        if key == "processor":
            processors += 1
            physical_id = None
        elif key == "physical id":
            physical_id = value
        elif key == "core id" and physical_id is not None:
            cores.add((physical_id, value))
    return len(cores) or processors

def auto_sort_memory(memory, mode):
    """Memory budget (Mb) for sorting, after reserving for the other running stages.
    """
    reserve = SORT_RESERVE.get(mode, SORT_RESERVE["default"])
    low, high = SORT_MEMORY_RANGE
    return max(low, min(high, memory - reserve))

def uses_aligner(mode):
    return mode not in NO_ALIGNER_MODES

def check_environment(config, host, sys_config=None):
    """Ensure the machine can run the requested mode.

    Returns the resolved aligner path for modes that run STAR, or the
    configured value otherwise.
    """
    if not uses_aligner(config.mode):
        return config.star
    if host.memory < MIN_ALIGNER_MEMORY:
        raise HostEnvironmentError(
            "IRFinder needs at least %sMb of memory to run STAR for %s mode; this machine "
            "has %sMb. Only %s modes can run with less memory."
            % (MIN_ALIGNER_MEMORY, config.mode, host.memory, " and ".join(NO_ALIGNER_MODES)))
    star = programs.get_star(config, sys_config or {})
    version = programs.star_version(star)
    logger.debug("Using STAR %s at %s" % (version, star))
    return star

def resolve(config, host, star=None):
    """Fill in automatic thread count and sort memory from host resources.
    """
    threads = config.threads or host.threads
    sort_memory = config.sort_memory
    if sort_memory is None:
        sort_memory = auto_sort_memory(host.memory, config.mode)
    return config._replace(threads=threads, sort_memory=sort_memory,
                           star=star or config.star)
