"""Parse IRFinder command line arguments.
"""
import argparse

from irfinder.errors import ArgumentError
from irfinder.pipeline import version

MODES = ["FastQ", "BAM", "BuildRef", "BuildRefDownload", "BuildRefProcess"]
STAR_MEMORY = ["NoSharedMemory", "LoadAndKeep", "LoadAndRemove"]

USAGE_EXAMPLES = """
examples:
  irfinder.py -r REF/Human-hg19-release75 [-a none|SEQ|SEQ1,SEQ2] reads.fq.gz [mates.fq.gz]
  irfinder.py -m BAM -r REF/Human-hg19-release75 unsorted.bam
  irfinder.py -m BuildRef -r REF/Human-hg19-release75 ftp://ftp.ensembl.org/pub/release-75/
  irfinder.py -m BuildRefProcess -r REF/Human-hg19-release75

exit status:
  0 success, 1 invalid arguments, 2 machine or installation cannot run the mode,
  3 a pipeline stage or collaborator program failed
"""


class ArgumentParser(argparse.ArgumentParser):
    """Report problems as ArgumentError so the caller controls output and exit status.
    """
    def error(self, message):
        raise ArgumentError(message)


def non_negative_int(x):
    try:
        val = int(x)
    except ValueError:
        raise argparse.ArgumentTypeError("expected a non-negative integer, got %r" % x)
    if val < 0:
        raise argparse.ArgumentTypeError("expected a non-negative integer, got %r" % x)
    return val

def version_str():
    if version.__git_revision__:
        return "IRFinder version: %s-%s" % (version.__version__, version.__git_revision__)
    return "IRFinder version: %s" % version.__version__

def make_parser():
    description = "Detect and quantify intron retention from RNA-seq reads."
    parser = ArgumentParser(description=description, epilog=USAGE_EXAMPLES, prog="irfinder.py",
                            formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("inputs", nargs="*",
                        help=("FastQ mode: one (single-end) or two (paired-end) read files, "
                              "optionally gzipped. BAM mode: one unsorted BAM file. "
                              "BuildRef and BuildRefDownload: an Ensembl FTP URL."))
    parser.add_argument("-m", "--mode", choices=MODES, default="FastQ",
                        help="Run mode (default: FastQ)")
    parser.add_argument("-r", "--reference", required=True,
                        help="Reference directory, required in every mode")
    parser.add_argument("-a", "--adapter",
                        help=("Adapter sequence to trim: 'none' or 'off' to disable, a single "
                              "sequence, or two comma separated sequences for paired-end reads "
                              "(default: AGATCGGAAG)"))
    parser.add_argument("-t", "--threads", type=non_negative_int, default=0,
                        help="Number of threads, 0 to detect physical cores (default: 0)")
    parser.add_argument("-d", "--outdir", dest="out_dir", default=".",
                        help="Output directory (default: current directory)")
    parser.add_argument("-s", "--star-memory", choices=STAR_MEMORY, default="NoSharedMemory",
                        help="STAR --genomeLoad shared memory mode (default: NoSharedMemory)")
    parser.add_argument("-S", "--star", help="STAR executable to use")
    parser.add_argument("-u", "--unsorted", action="store_true", default=False,
                        help="Do not sort the fragment BAM output")
    parser.add_argument("-M", "--sort-memory", type=non_negative_int,
                        help=("Memory (Mb) for sorting; by default derived from system memory "
                              "and clamped to 500-10000"))
    parser.add_argument("-e", "--extra-genome",
                        help="Extra sequences (FASTA) added to the genome; build modes only")
    parser.add_argument("-b", "--blacklist",
                        help="BED file of regions excluded from measurement; build modes only")
    parser.add_argument("-R", "--roi",
                        help="BED file of non-coding regions of interest; build modes only")
    parser.add_argument("-v", "--version", action="version", version=version_str(),
                        help="Print version and exit")
    return parser

def parse_cl_args(in_args, parser=None):
    if parser is None:
        parser = make_parser()
    return parser.parse_args(in_args)
