"""Validate command line input into a single immutable run configuration.

Every check raises ArgumentError; the configuration is only built once all
checks pass, so downstream code never sees a partially valid run.
"""
import collections
import os
import re

from irfinder import utils
from irfinder.errors import ArgumentError
from irfinder.pipeline import reference

BUILD_MODES = ["BuildRef", "BuildRefDownload", "BuildRefProcess"]
DEFAULT_ADAPTER = "AGATCGGAAG"
# results and logs that mark an output directory as used by an earlier run
RUN_ARTIFACTS = ["IRFinder-IR-nondir.txt", "IRFinder-IR-dir.txt",
                 "irfinder.stdout", "irfinder.stderr"]

_single_adapter = re.compile(r"^[ATGCN]+$")
_paired_adapter = re.compile(r"^[ATGCN]+,[ATGCN]+$")

RunConfiguration = collections.namedtuple(
    "RunConfiguration",
    ["mode", "reference", "out_dir", "threads", "star_memory", "star", "trim", "adapters",
     "sort", "sort_memory", "inputs", "url", "extra_genome", "blacklist", "roi"])

def is_build(config):
    return config.mode in BUILD_MODES

def is_paired(config):
    return config.mode == "FastQ" and len(config.inputs) == 2

def validate(args):
    """Check parsed command line arguments, returning a RunConfiguration.

    May create the output directory; writes nothing else.
    """
    if not args.reference:
        raise ArgumentError("A reference directory (-r) is required in every mode.")
    ref_dir = os.path.abspath(args.reference)
    trim, adapter = parse_adapter(args.adapter)
    aux_files = [_check_aux_file(flag, fname) for flag, fname in
                 [("-e", args.extra_genome), ("-b", args.blacklist), ("-R", args.roi)]]
    star = _check_star(args.star)
    inputs, url = _check_positional(args.mode, args.inputs)
    reference.check(args.mode, ref_dir)
    adapters = _match_adapters(args.mode, trim, adapter, inputs)
    out_dir = _setup_out_dir(args.out_dir)
    extra_genome, blacklist, roi = aux_files
    return RunConfiguration(mode=args.mode, reference=ref_dir, out_dir=out_dir,
                            threads=args.threads, star_memory=args.star_memory, star=star,
                            trim=trim, adapters=adapters, sort=not args.unsorted,
                            sort_memory=args.sort_memory, inputs=inputs, url=url,
                            extra_genome=extra_genome, blacklist=blacklist, roi=roi)

def parse_adapter(adapter):
    """Interpret the -a value as (trim, adapter), adapter pairs space separated.

    'none' and 'off' disable trimming, a missing value uses the default adapter.
    """
    if adapter is None:
        return True, None
    elif adapter in ["none", "off"]:
        return False, None
    elif _single_adapter.match(adapter):
        return True, adapter
    elif _paired_adapter.match(adapter):
        return True, adapter.replace(",", " ")
    raise ArgumentError("Adapter sequence (-a) must be 'none', 'off', a sequence of A, T, G, C "
                        "and N, or two such sequences separated by a comma. Got: %s" % adapter)

def _match_adapters(mode, trim, adapter, inputs):
    """Provide one adapter per input file when trimming FastQ reads.
    """
    if mode != "FastQ" or not trim:
        return ()
    if adapter is None:
        return tuple([DEFAULT_ADAPTER] * len(inputs))
    adapters = tuple(adapter.split())
    if len(adapters) != len(inputs):
        if len(inputs) == 2:
            raise ArgumentError("Paired-end input needs two adapter sequences separated by a "
                                "comma (-a SEQ1,SEQ2), or -a none to disable trimming.")
        raise ArgumentError("Single-end input takes a single adapter sequence, got: %s"
                            % ",".join(adapters))
    return adapters

def _check_aux_file(flag, fname):
    if fname is None:
        return None
    if not os.path.isfile(fname):
        raise ArgumentError("File given to %s does not exist or is not a regular file: %s"
                            % (flag, fname))
    return os.path.abspath(fname)

def _check_star(star):
    if star is None:
        return None
    if os.path.isdir(star) or not utils.is_executable(star):
        raise ArgumentError("STAR executable (-S) is not an executable file: %s" % star)
    return os.path.abspath(star)

def _check_positional(mode, args):
    """Check positional arguments match the mode, returning (inputs, url).
    """
    if mode in ["BuildRef", "BuildRefDownload"]:
        if len(args) != 1 or not args[0].startswith("ftp"):
            raise ArgumentError("%s mode takes exactly one argument, an FTP URL to an Ensembl "
                                "release. Got: %s" % (mode, " ".join(args) or "nothing"))
        return (), args[0]
    elif mode == "BuildRefProcess":
        if args:
            raise ArgumentError("BuildRefProcess mode takes no arguments, got: %s" % " ".join(args))
        return (), None
    max_inputs = 2 if mode == "FastQ" else 1
    if not 1 <= len(args) <= max_inputs:
        raise ArgumentError("%s mode takes %s input file%s, got %s."
                            % (mode, "one or two" if max_inputs == 2 else "exactly one",
                               "s" if max_inputs == 2 else "", len(args)))
    for fname in args:
        if not utils.is_readable_input(fname):
            raise ArgumentError("Input file does not exist or is not a regular file or named "
                                "pipe: %s" % fname)
    return tuple(os.path.abspath(x) for x in args), None

def _setup_out_dir(out_dir):
    out_dir = os.path.abspath(out_dir)
    if os.path.exists(out_dir):
        if not os.path.isdir(out_dir):
            raise ArgumentError("Output path %s exists and is not a directory." % out_dir)
        prior = [x for x in RUN_ARTIFACTS if os.path.exists(os.path.join(out_dir, x))]
        if prior:
            raise ArgumentError("Output directory %s already contains %s from a previous run. "
                                "Choose a new directory with -d." % (out_dir, ", ".join(prior)))
    else:
        try:
            os.makedirs(out_dir)
        except OSError as e:
            raise ArgumentError("Could not create output directory %s: %s" % (out_dir, e))
    if not os.path.isdir(out_dir):
        raise ArgumentError("Could not create output directory %s" % out_dir)
    return out_dir
