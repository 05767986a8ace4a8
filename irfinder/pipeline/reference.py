"""Check reference directories have the layout each run mode expects.

A finished reference holds a STAR index and the IRFinder derived index files:

    <ref>/STAR/
    <ref>/IRFinder/ref-cover.bed
    <ref>/IRFinder/ref-sj.ref
    <ref>/IRFinder/ref-read-continues.ref
    <ref>/IRFinder/ref-ROI.bed
"""
import collections
import os

from irfinder.errors import ArgumentError

STAR_DIR = "STAR"
REF_COVER = os.path.join("IRFinder", "ref-cover.bed")
REF_SJ = os.path.join("IRFinder", "ref-sj.ref")
REF_CONTINUES = os.path.join("IRFinder", "ref-read-continues.ref")
REF_ROI = os.path.join("IRFinder", "ref-ROI.bed")
# inputs BuildRefProcess works from, left by BuildRefDownload or the user
BUILD_INPUTS = ["genome.fa", "transcripts.gtf"]
BUILD_OUTPUTS = ["STAR", "Mapability", "IRFinder"]

ReferencePaths = collections.namedtuple("ReferencePaths",
                                        ["star_index", "cover", "sj", "continues", "roi"])

def get_paths(ref_dir):
    return ReferencePaths(*[os.path.join(ref_dir, x) for x in
                            [STAR_DIR, REF_COVER, REF_SJ, REF_CONTINUES, REF_ROI]])

def check(mode, ref_dir):
    """Dispatch to the layout check for a run mode.
    """
    if mode in ["BuildRef", "BuildRefDownload"]:
        _check_new(ref_dir)
    elif mode == "BuildRefProcess":
        _check_process(ref_dir)
    else:
        _check_finished(ref_dir)

def _check_new(ref_dir):
    if os.path.exists(ref_dir):
        raise ArgumentError("Reference directory %s already exists. Building a reference "
                            "needs a new directory; it will not be overwritten." % ref_dir)

def _check_process(ref_dir):
    if not os.path.isdir(ref_dir):
        raise ArgumentError("Reference directory %s does not exist. BuildRefProcess works on "
                            "a directory containing %s." % (ref_dir, " and ".join(BUILD_INPUTS)))
    missing = [x for x in BUILD_INPUTS if not os.path.exists(os.path.join(ref_dir, x))]
    if missing:
        raise ArgumentError("Reference directory %s is missing %s, required for BuildRefProcess."
                            % (ref_dir, ", ".join(missing)))
    present = [x for x in BUILD_OUTPUTS if os.path.exists(os.path.join(ref_dir, x))]
    if present:
        raise ArgumentError("Reference directory %s already contains %s from a previous build. "
                            "Remove them before running BuildRefProcess again."
                            % (ref_dir, ", ".join(present)))

def _check_finished(ref_dir):
    if not os.path.isfile(os.path.join(ref_dir, REF_COVER)):
        raise ArgumentError("%s is not a valid reference: could not find %s. Build one with "
                            "-m BuildRef." % (ref_dir, REF_COVER))
