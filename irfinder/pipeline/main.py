"""Main entry point for an IRFinder run.

Validates the command line, checks the machine can run the selected mode,
then builds or analyses and finally checks results for warnings.
"""
import sys

from irfinder import log
from irfinder.errors import ArgumentError, HostEnvironmentError, IRFinderError
from irfinder.log import logger
from irfinder.pipeline import assemble, clargs, config_utils, report, run_info
from irfinder.provenance import system


def run_main(args, sys_config=None, host=None):
    """Run a single invocation from parsed command line arguments.
    """
    config = run_info.validate(args)
    if sys_config is None:
        try:
            sys_config = config_utils.load_system_config()
        except ValueError as e:
            raise HostEnvironmentError(str(e))
    if host is None:
        host = system.machine_info()
    star = system.check_environment(config, host, sys_config)
    config = system.resolve(config, host, star)
    handler = log.setup_run_logging(config.out_dir, sys_config)
    try:
        report.write_banner(config)
        logger.info("Using %s threads; %sMb memory available, %sMb for sorting."
                    % (config.threads, host.memory, config.sort_memory))
        if sys_config.get("irfinder_system"):
            logger.info("System configuration: %s" % sys_config["irfinder_system"])
        assemble.run(config, sys_config)
        if not run_info.is_build(config):
            report.check_warnings(config, sys_config)
        logger.info("IRFinder %s run finished." % config.mode)
    except IRFinderError as e:
        logger.error("IRFinder %s run failed: %s" % (config.mode, e))
        raise
    finally:
        log.teardown_run_logging(handler)
    return config

def main(in_args=None):
    """Command line entry, mapping failures to exit status.
    """
    parser = clargs.make_parser()
    try:
        args = clargs.parse_cl_args(sys.argv[1:] if in_args is None else in_args, parser)
        run_main(args)
    except ArgumentError as e:
        sys.stderr.write("ERROR: %s\n\n" % e)
        parser.print_usage(sys.stderr)
        return e.exit_code
    except IRFinderError as e:
        sys.stderr.write("ERROR: %s\n" % e)
        return e.exit_code
    return 0
