import os
import signal
import subprocess as subp
import tempfile
import time
from collections import namedtuple

from melt_config import FILE_PLACEHOLDER, TIMEOUT_MS, SOURCE_SUFFIX
from melt_config import TMP_PREFIX
from melt_utils import debug, env_with_tmpdir, write_file


class SpawnFailure(Exception):
    'Raised when the command under test cannot be started at all.'
    pass


class RunResult(namedtuple('RunResult', ['exit_status', 'stdout', 'stderr',
                                         'duration', 'timed_out'])):
    '''The observable outcome of one compiler run. exit_status is None if
    the run timed out and negative if the process died by a signal.'''

    __slots__ = ()

    def stderr_text(self):
        return self.stderr.decode('utf-8', errors='replace')


def command_line(command, args, input_file):
    '''Build the argv. Occurrences of the placeholder in args are replaced
    by input_file; without a placeholder, input_file goes last.'''

    if any(FILE_PLACEHOLDER in a for a in args):
        args = [a.replace(FILE_PLACEHOLDER, input_file) for a in args]
    else:
        args = list(args) + [input_file]
    return [command] + args


def _kill_group(p):
    try:
        os.killpg(p.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Already gone; communicate() below reaps it.
        pass


def run(command, args, input_file, timeout, cwd=None, env=None):
    '''Run command with args on input_file and return a RunResult.

    timeout is in seconds. A run exceeding it has its whole process group
    killed and reaped before this returns; that is reported with
    timed_out=True, not as an error.'''

    cmd = command_line(command, args, input_file)
    debug('Running ' + ' '.join(cmd))
    start = time.monotonic()
    try:
        p = subp.Popen(cmd, stdin=subp.DEVNULL, stdout=subp.PIPE,
                       stderr=subp.PIPE, cwd=cwd, env=env,
                       start_new_session=True)
    except OSError as e:
        raise SpawnFailure('Failed to run {}: {}'.format(command, e)) from e
    with p:
        try:
            stdout, stderr = p.communicate(timeout=timeout)
        except subp.TimeoutExpired:
            _kill_group(p)
            stdout, stderr = p.communicate()
            debug('Timed out after {:.1f} s: {}'.format(
                time.monotonic() - start, ' '.join(cmd)))
            return RunResult(None, stdout, stderr,
                             time.monotonic() - start, True)
        except BaseException:
            # KeyboardInterrupt and the like must not leak the child.
            _kill_group(p)
            p.wait()
            raise
    return RunResult(p.returncode, stdout, stderr,
                     time.monotonic() - start, False)


class InvocationSpec(namedtuple('InvocationSpec', ['command', 'args',
                                                   'timeout', 'suffix'])):
    'How to run the compiler on a file. timeout is in seconds.'

    __slots__ = ()

    def __new__(cls, command, args=(), timeout=TIMEOUT_MS / 1000,
                suffix=SOURCE_SUFFIX):
        return super(InvocationSpec, cls).__new__(
            cls, command=command, args=list(args), timeout=timeout,
            suffix=suffix)


def run_in_scratch_dir(spec, source, tmp_root=None):
    '''Write source to a fresh temporary directory, run the compiler on it
    there and remove the directory, whatever happens. The compiler's
    outputs and temporaries land in that directory too.'''

    with tempfile.TemporaryDirectory(prefix=TMP_PREFIX, dir=tmp_root) as d:
        fname = os.path.join(d, 'candidate' + spec.suffix)
        write_file(fname, source)
        return run(spec.command, spec.args, fname, spec.timeout,
                   cwd=d, env=env_with_tmpdir(d))


def compiler_version(command):
    'Return the verbose version of the compiler, or <unknown>.'

    try:
        out = subp.run(list(command) + ['--version', '--verbose'],
                       stdout=subp.PIPE, stderr=subp.DEVNULL, timeout=30)
    except (OSError, subp.TimeoutExpired):
        return '<unknown>'
    return out.stdout.decode('utf-8', errors='replace').strip() or '<unknown>'
