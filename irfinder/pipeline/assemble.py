"""Assemble and run the process pipeline for a validated run configuration.

Analysis modes stream reads through these stages:

    [trim ->] STAR -> tee Unsorted.bam -> gzip -cd -> irfinder [-> novosort]

FastQ runs start at the aligner, with paired-end trimming feeding STAR through
two named pipes and single-end trimming done by STAR itself. BAM runs start
at decompression of the supplied archive. The sort stage is detached from the
main pipeline and joined through a SortBarrier. Build modes hand everything
to the reference builder.
"""
import os

from irfinder import log
from irfinder.bam import sort, trim
from irfinder.log import logger
from irfinder.ngsalign import star as star_align
from irfinder.pipeline import buildref, config_utils, graph, reference, run_info, sync
from irfinder.provenance import do

UNSORTED_BAM = "Unsorted.bam"
UNSORTED_FRAG_BAM = "unsorted.frag.bam"
FILTER = "irfinder"


def run(config, sys_config, today=None):
    """Run the mode selected by the configuration to completion.

    Returns the executed PipelineSpec for analysis modes, None for builds.
    """
    if run_info.is_build(config):
        buildref.run(config, sys_config)
        return None
    novosort = sort.choose(config, sys_config, today)
    spec = analysis_spec(config, sys_config, novosort)
    log_files = log.get_log_files(config.out_dir)
    descr = "Running %s %s pipeline" % ("paired-end" if run_info.is_paired(config) else
                                        "single-end" if config.mode == "FastQ" else "BAM",
                                        "sorted" if novosort else "unsorted")
    if spec.detached():
        with sync.SortBarrier(config.out_dir, timeout=sys_config.get("sort_timeout")) as barrier:
            do.run_pipeline(spec, log_files, descr, on_detached=barrier.supervise)
            barrier.join()
    else:
        do.run_pipeline(spec, log_files, descr)
    return spec

def analysis_spec(config, sys_config, novosort=None):
    """Build the stages of an analysis run; novosort adds the detached sort stage.
    """
    ref_paths = reference.get_paths(config.reference)
    gzip = config_utils.get_program("gzip", sys_config)
    stages = []
    if config.mode == "FastQ":
        stages.extend(_align_stages(config, sys_config, ref_paths, gzip))
        tee = config_utils.get_program("tee", sys_config)
        stages.append(graph.Stage("tee", [tee, os.path.join(config.out_dir, UNSORTED_BAM)],
                                  stdin=graph.Pipe(), stdout=graph.Pipe()))
        stages.append(graph.Stage("decompress", [gzip, "-cd"], stdin=graph.Pipe(),
                                  stdout=graph.Pipe()))
    else:
        stages.append(graph.Stage("decompress", [gzip, "-cd"],
                                  stdin=graph.File(config.inputs[0]), stdout=graph.Pipe()))
    filter_cmd = [config_utils.get_program(FILTER, sys_config), config.out_dir,
                  ref_paths.cover, ref_paths.sj, ref_paths.continues, ref_paths.roi]
    if novosort:
        stages.append(graph.Stage(FILTER, filter_cmd, stdin=graph.Pipe(), stdout=graph.Pipe()))
        stages.append(sort.sort_stage(novosort, config))
    else:
        frag_bam = os.path.join(config.out_dir, UNSORTED_FRAG_BAM)
        stages.append(graph.Stage(FILTER, filter_cmd, stdin=graph.Pipe(),
                                  stdout=graph.File(frag_bam)))
    return graph.PipelineSpec(stages).validate()

def _align_stages(config, sys_config, ref_paths, gzip):
    stages = []
    if run_info.is_paired(config) and config.trim:
        fifos = trim.named_pipes(config.out_dir)
        trimmer = config_utils.get_program("trim", sys_config)
        logger.info("Trimming adapters %s from paired-end reads." % " ".join(config.adapters))
        stages.append(trim.trim_stage(trimmer, config, fifos, gzip))
        read_files = fifos
    else:
        if config.trim:
            logger.info("Clipping adapter %s with STAR." % config.adapters[0])
        read_files = [star_align.read_input(x, gzip) for x in config.inputs]
    stages.append(star_align.align_stage(config.star, config, ref_paths, read_files))
    return stages
