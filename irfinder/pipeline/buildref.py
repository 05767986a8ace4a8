"""Hand reference construction to the external reference builder.

BuildRef downloads and processes an Ensembl release, BuildRefDownload only
fetches genome.fa and transcripts.gtf, BuildRefProcess builds the STAR index,
mapability and IRFinder files from an already downloaded directory.
"""
import os

from irfinder.pipeline import config_utils, reference
from irfinder.provenance import do

BUILDER = "irfinder-build-ref"


def build_cmd(builder, config):
    optional = [x or "" for x in [config.extra_genome, config.blacklist, config.roi]]
    return [builder, config.mode, config.threads, config.star or "STAR",
            config.url or "", config.reference] + optional

def expected_outputs(config):
    """Files the builder must leave behind for the mode to count as finished.
    """
    if config.mode == "BuildRefDownload":
        return [os.path.join(config.reference, x) for x in reference.BUILD_INPUTS]
    return [reference.get_paths(config.reference).cover]

def run(config, sys_config):
    builder = config_utils.get_program(BUILDER, sys_config)
    do.run(build_cmd(builder, config),
           "Building reference in %s (%s)" % (config.reference, config.mode),
           checks=[do.file_nonempty(x) for x in expected_outputs(config)],
           log_stdout=True)
    return config.reference
