"""Centralize running of external commands, providing logging and tracking.

`run` handles a single command, logging its output. `run_pipeline` starts
the processes of a PipelineSpec, wiring their pipes explicitly, and waits for
every stage that is not detached.
"""
import collections
import os
import signal
import subprocess

from irfinder import utils
from irfinder.errors import PipelineError
from irfinder.log import logger, logger_cl, logger_stdout
from irfinder.pipeline import graph


def run(cmd, descr=None, checks=None, log_error=True, log_stdout=False, env=None):
    """Run the provided command, logging details and checking for errors.
    """
    if descr:
        logger.info(descr)
    try:
        logger_cl.debug(" ".join(str(x) for x in cmd))
        _do_run(cmd, checks, log_stdout, env=env)
    except subprocess.CalledProcessError as e:
        if log_error:
            logger.error("Command failed with exit status %s: %s" % (e.returncode, e.cmd))
        raise PipelineError(str(e.cmd), os.path.basename(str(cmd[0])), e.returncode)

def _do_run(cmd, checks, log_stdout=False, env=None):
    """Perform running and check results, raising errors for issues.
    """
    cmd = [str(x) for x in cmd]
    s = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        close_fds=True,
        env=env,
    )
    debug_stdout = collections.deque(maxlen=100)
    for raw in s.stdout:
        line = raw.decode("utf-8", errors="replace")
        if line.rstrip():
            debug_stdout.append(line)
            if log_stdout:
                logger_stdout.info(line.rstrip())
            else:
                logger.debug(line.rstrip())
    exitcode = s.wait()
    s.stdout.close()
    if exitcode != 0:
        error_msg = " ".join(cmd)
        error_msg += "\n"
        error_msg += "".join(debug_stdout)
        raise subprocess.CalledProcessError(exitcode, error_msg)
    # Check for problems not identified by shell return codes
    if checks:
        for check in checks:
            if not check():
                raise PipelineError("External command failed: %s" % " ".join(cmd))

# checks for validating run completed successfully

def file_exists(target_file):
    def check():
        ok = os.path.exists(target_file)
        if not ok:
            logger.info("Did not find output file {0}".format(target_file))
        return ok
    return check

def file_nonempty(target_file):
    def check():
        ok = utils.file_exists(target_file)
        if not ok:
            logger.info("Did not find non-empty output file {0}".format(target_file))
        return ok
    return check

# ## Streaming pipelines

Running = collections.namedtuple("Running", ["stage", "proc", "helpers"])

# seconds between attempts to unblock stages stuck opening a named pipe
RELEASE_INTERVAL = 0.5

def run_pipeline(spec, log_files, descr=None, on_detached=None):
    """Run all stages of a pipeline, waiting for the attached ones to finish.

    log_files is the (stdout, stderr) pair that receives stage output not
    redirected elsewhere. A detached stage is passed to on_detached as soon as
    it starts; without a callback it is waited on like any other stage. Named
    pipes exist only while the pipeline runs.
    """
    spec.validate()
    if descr:
        logger.info(descr)
    logger_cl.debug(spec.describe())
    stdout_log, stderr_log = log_files
    with graph.named_pipes(spec.named_pipes()):
        with open(stdout_log, "ab") as out_handle, open(stderr_log, "ab") as err_handle:
            running = _launch(spec.stages, out_handle, err_handle)
            waited = []
            for r in running:
                if r.stage.detached and on_detached is not None:
                    on_detached(r.proc)
                else:
                    waited.append(r)
            returncodes = _wait(waited)
    _check_returncodes(returncodes)

def _launch(stages, out_handle, err_handle):
    running = []
    helpers = []
    prev_stdout = None
    try:
        for stage in stages:
            helpers = []
            args, pass_fds = _start_substitutions(stage, err_handle, helpers)
            to_close = []
            try:
                stdin = _stdin_arg(stage.stdin, prev_stdout, to_close)
                stdout = _stream_arg(stage.stdout, out_handle, to_close)
                stderr = _stream_arg(stage.stderr, err_handle, to_close)
                proc = subprocess.Popen(args, stdin=stdin, stdout=stdout, stderr=stderr,
                                        close_fds=True, pass_fds=pass_fds)
            finally:
                for fd in pass_fds:
                    os.close(fd)
                for handle in to_close:
                    handle.close()
            running.append(Running(stage, proc, helpers))
            helpers = []
            # the downstream reader owns the pipe now, so upstream sees SIGPIPE
            if prev_stdout is not None:
                prev_stdout.close()
            prev_stdout = proc.stdout if isinstance(stage.stdout, graph.Pipe) else None
    except (OSError, ValueError):
        logger.error("Could not start pipeline stage %s" % stage.name)
        if prev_stdout is not None:
            prev_stdout.close()
        _terminate(running, helpers)
        raise
    return running

def _start_substitutions(stage, err_handle, helpers):
    """Start helper commands for process substitutions, appending them to helpers.

    Returns the stage arguments and the read ends the stage inherits.
    """
    args, fds = [], []
    try:
        for x in stage.cmd:
            if isinstance(x, graph.Substitute):
                read_fd, write_fd = os.pipe()
                fds.append(read_fd)
                try:
                    helpers.append(subprocess.Popen([str(y) for y in x.cmd],
                                                    stdin=subprocess.DEVNULL, stdout=write_fd,
                                                    stderr=err_handle, close_fds=True))
                finally:
                    os.close(write_fd)
                args.append("/dev/fd/%s" % read_fd)
            else:
                args.append(str(x))
    except (OSError, ValueError):
        for fd in fds:
            os.close(fd)
        raise
    return args, tuple(fds)

def _stdin_arg(endpoint, prev_stdout, to_close):
    if isinstance(endpoint, graph.Pipe):
        return prev_stdout
    elif isinstance(endpoint, graph.File):
        handle = open(endpoint.path, "rb")
        to_close.append(handle)
        return handle
    elif isinstance(endpoint, graph.Inherit):
        return None
    return subprocess.DEVNULL

def _stream_arg(endpoint, log_handle, to_close):
    if endpoint is None:
        return log_handle
    elif isinstance(endpoint, graph.Pipe):
        return subprocess.PIPE
    elif isinstance(endpoint, graph.File):
        handle = open(endpoint.path, "ab" if endpoint.append else "wb")
        to_close.append(handle)
        return handle
    elif isinstance(endpoint, graph.Inherit):
        return None
    return subprocess.DEVNULL

def _wait(running):
    """Wait on every stage, returning exit codes in pipeline order.

    Opening a named pipe blocks until its other end is opened too. Named pipe
    writers are the first stage using a pipe; later stages read it. When a
    writer exits, readers still blocked opening its pipes are given end of
    file. When every other stage has exited, writers still blocked opening
    their pipes are given a closed pipe to fail on.
    """
    writers = _named_pipe_writers(running)
    while True:
        pending = [r for r in running if r.proc.poll() is None]
        if not pending:
            break
        if not writers:
            pending[0].proc.wait()
            continue
        _release_named_pipes(running, writers)
        try:
            pending[0].proc.wait(timeout=RELEASE_INTERVAL)
        except subprocess.TimeoutExpired:
            pass
    returncodes = [(r.stage.name, r.proc.returncode) for r in running]
    for r in running:
        for helper in r.helpers:
            returncodes.append((r.stage.name, helper.wait()))
    return returncodes

def _named_pipe_writers(running):
    writers = {}
    seen = set()
    for r in running:
        for fifo in r.stage.named_pipes():
            if fifo.path not in seen:
                seen.add(fifo.path)
                writers.setdefault(r.stage.name, []).append(fifo.path)
    return writers

def _release_named_pipes(running, writers):
    others_done = all(r.proc.poll() is not None for r in running
                      if r.stage.name not in writers)
    for r in running:
        fifos = writers.get(r.stage.name, [])
        if r.proc.poll() is not None:
            for fifo in fifos:
                _open_other_end(fifo, os.O_WRONLY)
        elif others_done:
            for fifo in fifos:
                _open_other_end(fifo, os.O_RDONLY)

def _open_other_end(path, flags):
    """Briefly open a named pipe without blocking, waking a process blocked opening it.

    Opening for writing fails with ENXIO when nothing is reading, which leaves
    nothing to wake.
    """
    try:
        fd = os.open(path, flags | os.O_NONBLOCK)
    except OSError:
        return
    os.close(fd)

def _terminate(running, helpers=()):
    procs = [p for r in running for p in [r.proc] + r.helpers] + list(helpers)
    for proc in procs:
        if proc.poll() is None:
            proc.terminate()
        proc.wait()

def _check_returncodes(returncodes):
    failed = [(name, code) for name, code in returncodes if code != 0]
    if failed:
        # upstream stages killed by a closed pipe are a consequence, not a cause
        causes = [(n, c) for n, c in failed if c != -signal.SIGPIPE] or failed
        name, code = causes[0]
        msg = ", ".join("%s exited with status %s" % (n, c) for n, c in failed)
        logger.error("Pipeline failed: %s" % msg)
        raise PipelineError("Pipeline stage %s failed: %s" % (name, msg), name, code)
