"""Adapter trimming of paired-end reads upstream of the aligner.

The trimmer reads both raw inputs and writes trimmed reads into two named
pipes, which STAR then reads as its paired input.
"""
import os

from irfinder.pipeline import graph


def named_pipes(out_dir, pid=None):
    """Per-run named pipes for trimmed first and second reads.
    """
    pid = pid or os.getpid()
    return [graph.NamedPipe(os.path.join(out_dir, ".irfinder-trim-%s-%s.fifo" % (pid, i)))
            for i in [1, 2]]

def trim_cmd(trimmer, config, fifos, gzip="gzip"):
    # gzip -f passes uncompressed input through unchanged
    inputs = [graph.Substitute([gzip, "-cdf", x]) for x in config.inputs]
    return [trimmer] + inputs + list(fifos) + list(config.adapters)

def trim_stage(trimmer, config, fifos, gzip="gzip"):
    return graph.Stage("trim", trim_cmd(trimmer, config, fifos, gzip))
