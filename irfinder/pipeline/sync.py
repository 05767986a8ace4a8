"""Completion barrier for the detached sort stage.

The sort stage runs outside the main pipeline so waiting on the pipeline does
not wait on it. A marker file named after this process is present while the
sort runs; a supervising worker waits on the sort process and removes the
marker when it exits, and the run joins on that worker before its final
warnings check.
"""
import os
import time
from concurrent import futures

from irfinder import utils
from irfinder.errors import PipelineError
from irfinder.log import logger

POLL_INTERVAL = 5


class SortBarrier(object):
    """Supervise exactly one detached stage and wait for it to finish.

    timeout, in seconds, bounds the wait in join; None waits indefinitely.
    """
    def __init__(self, out_dir, poll_interval=POLL_INTERVAL, timeout=None, pid=None):
        self.marker = os.path.join(out_dir, ".irfinder-sort-%s.running" % (pid or os.getpid()))
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._executor = None
        self._future = None
        self._proc = None

    def __enter__(self):
        with open(self.marker, "w") as out_handle:
            out_handle.write("%s\n" % os.getpid())
        self._executor = futures.ThreadPoolExecutor(max_workers=1)
        return self

    def __exit__(self, exc_type, exc_value, tb):
        # waits for a still running sort; it finishes on EOF from the pipeline
        self._executor.shutdown(wait=True)
        utils.remove_safe(self.marker)
        return False

    def supervise(self, proc):
        if self._future is not None:
            raise ValueError("Sort barrier already supervises a detached stage")
        self._proc = proc
        self._future = self._executor.submit(self._wait, proc)
        return self._future

    def _wait(self, proc):
        try:
            return proc.wait()
        finally:
            utils.remove_safe(self.marker)

    def is_running(self):
        return os.path.exists(self.marker)

    def join(self):
        """Block until the supervised stage exits, raising PipelineError on failure.
        """
        if self._future is None:
            utils.remove_safe(self.marker)
            return None
        start = time.time()
        logger.info("Waiting for novosort to finish sorting the fragment BAM.")
        while True:
            try:
                returncode = self._future.result(timeout=self.poll_interval)
                break
            except futures.TimeoutError:
                logger.debug("novosort still running after %d seconds" % (time.time() - start))
                if self.timeout is not None and time.time() - start >= self.timeout:
                    self._proc.terminate()
                    self._future.result()
                    raise PipelineError("novosort did not finish within %s seconds and was "
                                        "stopped." % self.timeout, "novosort")
        if returncode != 0:
            raise PipelineError("novosort exited with status %s" % returncode, "novosort",
                                returncode)
        logger.info("novosort finished.")
        return returncode
