"""Helpful utilities for checking and cleaning up run files.
"""
import os
import shutil
import stat


def file_exists(fname):
    """Check if a file exists and is non-empty.
    """
    try:
        return fname and os.path.exists(fname) and os.path.getsize(fname) > 0
    except OSError:
        return False

def is_fifo(fname):
    try:
        return stat.S_ISFIFO(os.stat(fname).st_mode)
    except OSError:
        return False

def is_readable_input(fname):
    """Regular file or named pipe, the two forms of streamable read input.
    """
    return os.path.isfile(fname) or is_fifo(fname)

def is_executable(fname):
    return os.path.isfile(fname) and os.access(fname, os.X_OK)

def is_gzipped(fname):
    _, ext = os.path.splitext(fname)
    return ext in [".gz", ".gzip"]

def remove_safe(f):
    try:
        if os.path.isdir(f) and not os.path.islink(f):
            shutil.rmtree(f)
        else:
            os.remove(f)
    except OSError:
        pass
