"""Pytest fixtures and test helper functions"""

import gzip
import os
import stat
import textwrap

import pytest

from irfinder.pipeline import clargs, reference
from irfinder.provenance.system import HostResources

BIG_HOST = HostResources(memory=64000, threads=4)
SMALL_HOST = HostResources(memory=16000, threads=2)

# Stand-ins for the external collaborators. Each records its arguments next
# to itself in <name>.args so tests can inspect how it was called.
FAKE_PROGRAMS = {
    "STAR": """\
        #!/bin/sh
        if [ "$1" = "--version" ]; then echo "2.7.10a"; exit 0; fi
        echo "$@" >> "$(dirname "$0")/STAR.args"
        files=""
        while [ $# -gt 0 ]; do
          case "$1" in
            --readFilesIn)
              shift
              while [ $# -gt 0 ] && [ "${1#--}" = "$1" ]; do files="$files $1"; shift; done ;;
            *) shift ;;
          esac
        done
        cat $files | gzip -c
        """,
    "trim": """\
        #!/bin/sh
        echo "$@" >> "$(dirname "$0")/trim.args"
        cat "$1" > "$3" &
        cat "$2" > "$4"
        wait
        """,
    "irfinder": """\
        #!/bin/sh
        echo "$@" >> "$(dirname "$0")/irfinder.args"
        cat > "$1/filter-input.txt"
        echo "intron retention" > "$1/IRFinder-IR-nondir.txt"
        echo "fragments"
        """,
    "warnings": """\
        #!/bin/sh
        echo "$@" >> "$(dirname "$0")/warnings.args"
        echo "No warnings for $1"
        """,
    "irfinder-build-ref": """\
        #!/bin/sh
        echo "$@" >> "$(dirname "$0")/irfinder-build-ref.args"
        echo "building"
        if [ "$1" = "BuildRefDownload" ]; then
          mkdir -p "$5"
          echo ">chr1" > "$5/genome.fa"
          echo "gene" > "$5/transcripts.gtf"
        else
          mkdir -p "$5/IRFinder"
          echo "chr1" > "$5/IRFinder/ref-cover.bed"
        fi
        """,
}


def write_script(path, content):
    with open(path, "w") as out_handle:
        out_handle.write(textwrap.dedent(content))
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def read_args(libexec, name):
    with open(os.path.join(libexec, "%s.args" % name)) as in_handle:
        return in_handle.read().split()


def write_gzip(path, content):
    with gzip.open(str(path), "wt") as out_handle:
        out_handle.write(content)
    return str(path)


@pytest.fixture
def libexec(tmp_path):
    """Directory of fake external programs"""
    bin_dir = tmp_path / "libexec"
    bin_dir.mkdir()
    for name, content in FAKE_PROGRAMS.items():
        write_script(str(bin_dir / name), content)
    return str(bin_dir)


@pytest.fixture
def sys_config(libexec):
    """System configuration pointing at the fake programs, without novosort"""
    return {"libexec": libexec,
            "resources": {"star": {"cmd": os.path.join(libexec, "STAR")},
                          "novosort": {"cmd": os.path.join(libexec, "missing", "novosort")}},
            "log": {"include_time": False}}


@pytest.fixture
def ref_dir(tmp_path):
    """A finished reference directory"""
    ref = tmp_path / "REF"
    ref.mkdir()
    (ref / "STAR").mkdir()
    paths = reference.get_paths(str(ref))
    os.makedirs(os.path.dirname(paths.cover))
    for fname in [paths.cover, paths.sj, paths.continues, paths.roi]:
        with open(fname, "w") as out_handle:
            out_handle.write("chr1\t1\t100\n")
    return str(ref)


@pytest.fixture
def out_dir(tmp_path):
    return str(tmp_path / "out")


@pytest.fixture
def parse():
    """Parse a command line into arguments"""
    def _parse(*in_args):
        return clargs.parse_cl_args([str(x) for x in in_args])
    return _parse


@pytest.fixture
def big_host():
    return BIG_HOST


@pytest.fixture
def small_host():
    return SMALL_HOST


@pytest.fixture
def make_script():
    return write_script


@pytest.fixture
def recorded_args():
    return read_args


@pytest.fixture
def make_gzip():
    return write_gzip
