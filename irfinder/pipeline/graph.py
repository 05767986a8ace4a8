"""Explicit description of a streaming process pipeline.

A PipelineSpec is an ordered list of stages. Each stage names its command and
where its standard streams come from and go to. Command arguments can embed
named pipes, addressed by path, and process substitutions, helper commands
whose output the stage reads through a /dev/fd path.
"""
import collections
import contextlib
import os

from irfinder import utils


class File(collections.namedtuple("File", ["path", "append"])):
    def __new__(cls, path, append=False):
        return super(File, cls).__new__(cls, path, append)

class _Stream(object):
    """Endpoint without a path, equal to any other endpoint of its kind."""
    def __eq__(self, other):
        return type(self) is type(other)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(type(self).__name__)

    def __repr__(self):
        return "%s()" % type(self).__name__

class Inherit(_Stream):
    pass

class Pipe(_Stream):
    """Anonymous pipe to the neighbouring stage in the stage list."""
    pass

class Devnull(_Stream):
    pass

class NamedPipe(collections.namedtuple("NamedPipe", ["path"])):
    def __str__(self):
        return self.path

class Substitute(collections.namedtuple("Substitute", ["cmd"])):
    """Equivalent of a shell <(cmd) process substitution."""
    def __str__(self):
        return "<(%s)" % " ".join(str(x) for x in self.cmd)


class Stage(collections.namedtuple("Stage", ["name", "cmd", "stdin", "stdout", "stderr",
                                             "detached"])):
    """A single process in the pipeline.

    stdout of None appends to the run log and stderr of None to the run error
    log; detached stages are not waited on by the executor and are handed back
    to the caller.
    """
    def __new__(cls, name, cmd, stdin=None, stdout=None, stderr=None, detached=False):
        return super(Stage, cls).__new__(cls, name, list(cmd), stdin or Devnull(),
                                         stdout, stderr, detached)

    def named_pipes(self):
        return [x for x in self.cmd if isinstance(x, NamedPipe)]

    def describe(self):
        cl = " ".join(str(x) for x in self.cmd)
        if isinstance(self.stdin, File):
            cl += " < %s" % self.stdin.path
        if isinstance(self.stdout, File):
            cl += " %s %s" % (">>" if self.stdout.append else ">", self.stdout.path)
        return cl


class PipelineSpec(collections.namedtuple("PipelineSpec", ["stages"])):

    def named_pipes(self):
        out = []
        for stage in self.stages:
            for fifo in stage.named_pipes():
                if fifo not in out:
                    out.append(fifo)
        return out

    def detached(self):
        return [s for s in self.stages if s.detached]

    def describe(self):
        """Shell-like rendering of the pipeline, for the command log.
        """
        out = []
        for stage in self.stages:
            if out and isinstance(stage.stdin, Pipe):
                out[-1] += " | " + stage.describe()
            else:
                out.append(stage.describe())
        return " ; ".join(out)

    def validate(self):
        """Check that piped stages line up and at most one stage is detached.
        """
        for i, stage in enumerate(self.stages):
            if isinstance(stage.stdin, Pipe):
                if i == 0 or not isinstance(self.stages[i - 1].stdout, Pipe):
                    raise ValueError("Stage %s reads a pipe with no upstream writer" % stage.name)
            if isinstance(stage.stdout, Pipe):
                if i == len(self.stages) - 1 or not isinstance(self.stages[i + 1].stdin, Pipe):
                    raise ValueError("Stage %s writes a pipe with no downstream reader" % stage.name)
        if len(self.detached()) > 1:
            raise ValueError("Only a single detached stage is supported: %s" %
                             [s.name for s in self.detached()])
        return self


@contextlib.contextmanager
def named_pipes(fifos):
    """Create named pipes for the duration of a run, removing them on every exit path.
    """
    created = []
    try:
        for fifo in fifos:
            utils.remove_safe(fifo.path)
            os.mkfifo(fifo.path)
            created.append(fifo.path)
        yield created
    finally:
        for path in created:
            utils.remove_safe(path)
