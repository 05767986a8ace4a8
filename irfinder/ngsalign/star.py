"""STAR alignment stage, streaming unsorted BAM to standard output.
"""
import os

from irfinder import utils
from irfinder.pipeline import graph

CLIP_MISMATCH = "0.1"


def read_input(fastq_file, gzip="gzip"):
    """Use process substitution instead of readFilesCommand for gzipped inputs.

    Prevents issues on shared filesystems that don't support FIFO:
    https://github.com/alexdobin/STAR/issues/143
    """
    if utils.is_gzipped(fastq_file):
        return graph.Substitute([gzip, "-cd", fastq_file])
    return fastq_file

def out_prefix(out_dir):
    return os.path.join(out_dir, "")

def align_cmd(star, config, ref_paths, read_files):
    cmd = [star, "--genomeLoad", config.star_memory,
           "--runThreadN", config.threads,
           "--genomeDir", ref_paths.star_index,
           "--outFileNamePrefix", out_prefix(config.out_dir),
           "--outFilterMultimapNmax", "1",
           "--outSAMstrandField", "None",
           "--outSAMtype", "BAM", "Unsorted",
           "--outSAMunmapped", "None",
           "--outSAMmode", "NoQS",
           "--outStd", "BAM_Unsorted",
           "--readFilesIn"] + list(read_files)
    # paired-end reads are trimmed upstream by the trimmer stage
    if config.trim and len(config.inputs) == 1:
        cmd += ["--clip3pAdapterSeq", config.adapters[0],
                "--clip3pAdapterMMp", CLIP_MISMATCH]
    return cmd

def align_stage(star, config, ref_paths, read_files):
    return graph.Stage("STAR", align_cmd(star, config, ref_paths, read_files),
                       stdout=graph.Pipe())
