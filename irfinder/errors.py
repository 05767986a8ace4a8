"""Failure categories for an IRFinder run, each mapped to a process exit status.
"""


class IRFinderError(Exception):
    exit_code = 1


class ArgumentError(IRFinderError):
    """Malformed or missing command line input; reported together with usage.
    """
    exit_code = 1


class HostEnvironmentError(IRFinderError):
    """The command is fine but this machine cannot run it.
    """
    exit_code = 2


class CmdNotFound(HostEnvironmentError):
    pass


class PipelineError(IRFinderError):
    """A stage of the streaming pipeline, or a collaborator command, failed.

    returncode holds the failing stage's own exit status, negative when it
    was killed by a signal.
    """
    exit_code = 3

    def __init__(self, msg, stage=None, returncode=None):
        super(PipelineError, self).__init__(msg)
        self.stage = stage
        self.returncode = returncode
