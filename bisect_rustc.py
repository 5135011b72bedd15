import os
import re
import shlex
import subprocess as subp
import sys
import tempfile
from collections import namedtuple

from melt_config import BISECT_COMMAND, BISECT_CHECK_TOOLCHAIN, BISECT_HEADING
from melt_config import BISECT_STDOUT_FILENAME, BISECT_STDERR_FILENAME
from melt_config import TMP_PREFIX, SOURCE_SUFFIX
from melt_utils import write_file, debug, warn
from run_compiler import InvocationSpec
import check_melt_property


BisectionOutcome = namedtuple('BisectionOutcome', [
    'regressed_start_version', 'regressed_end_version', 'raw_log'])

# rustup picks the toolchain from RUSTUP_TOOLCHAIN, which
# cargo-bisect-rustc sets for each toolchain it tries.
BISECT_COMPILER = 'rustc'

COMMIT_RANGE_RE = re.compile(
    r'searched commit range: \S*/compare/(?P<start>\w+)\.\.\.(?P<end>\w+)')
REGRESSED_COMMIT_RE = re.compile(
    r'regressed commit: \S*/commit/(?P<commit>\w+)')
REGRESSED_NIGHTLY_RE = re.compile(
    r'regressed nightly: (?P<nightly>nightly-\d{4}-\d{2}-\d{2})')

LINE_COL_RE = re.compile(r':\d+:\d+$')


def report_section(log):
    'The part of the output after the second heading line.'

    lines = []
    headings = 0
    for line in log.splitlines():
        if line.startswith(BISECT_HEADING):
            headings += 1
        elif headings >= 2:
            lines.append(line)
    return '\n'.join(lines).strip()


def parse_bisect_output(log):
    '''Return a BisectionOutcome from the stderr of cargo-bisect-rustc, or
    None if it did not find a regression.

    The range is the compared commit range if the bisection got down to
    commits; otherwise just the regressed nightly.'''

    m = COMMIT_RANGE_RE.search(log)
    if m:
        end = m.group('end')
        c = REGRESSED_COMMIT_RE.search(log)
        if c:
            end = c.group('commit')
        return BisectionOutcome(m.group('start'), end, log)
    m = REGRESSED_NIGHTLY_RE.search(log)
    if m:
        nightly = m.group('nightly')
        return BisectionOutcome(nightly, nightly, log)
    return None


def version_independent(fingerprint):
    '''Line numbers in the compiler sources change from one version to the
    next, so only the file of the ICE location has to match.'''

    if fingerprint.location is None:
        return fingerprint
    return fingerprint._replace(
        location=LINE_COL_RE.sub('', fingerprint.location))


def toolchain_free_args(args):
    "Drop a leading +toolchain argument; that's for bisection to choose."

    args = list(args)
    if args and args[0].startswith('+'):
        args = args[1:]
    return args


def write_script(path, session_fname, src_fname):
    '''Write a script that exits with 1 (regressed) if the source
    reproduces the session's ICE, 0 otherwise.'''

    cmd = [sys.executable, os.path.abspath(check_melt_property.__file__),
           '--invert', session_fname, src_fname]
    write_file(path, '#!/usr/bin/env bash\nexec {}\n'.format(
        ' '.join(shlex.quote(x) for x in cmd)), mode='w')
    os.chmod(path, 0o700)


def bisect(final_source, compiler_args, oracle, fingerprint, timeout,
           command=BISECT_COMMAND, log_dir=None):
    '''Bisect rustc versions for the regression that introduced the ICE.
    Returns a BisectionOutcome or None if bisection was inconclusive.'''

    spec = InvocationSpec(BISECT_COMPILER, toolchain_free_args(compiler_args),
                          timeout, SOURCE_SUFFIX)
    with tempfile.TemporaryDirectory(prefix=TMP_PREFIX) as d:
        session_fname = os.path.join(d, 'session.json')
        src_fname = os.path.join(d, 'melted' + SOURCE_SUFFIX)
        script_fname = os.path.join(d, 'bisect.sh')
        check_melt_property.save_session(
            session_fname, oracle, version_independent(fingerprint), spec)
        write_file(src_fname, final_source)
        write_script(script_fname, session_fname, src_fname)
        debug('Wrote script to ' + script_fname)

        env = dict(os.environ)
        env['RUSTUP_TOOLCHAIN'] = BISECT_CHECK_TOOLCHAIN
        try:
            sanity = subp.run([script_fname], env=env, stdout=subp.DEVNULL,
                              stderr=subp.DEVNULL)
        except OSError as e:
            warn('Could not run the bisection script: {}'.format(e))
            return None
        if sanity.returncode == 0:
            warn('The ICE does not reproduce with {}; not bisecting.'.format(
                BISECT_CHECK_TOOLCHAIN))
            return None

        try:
            out = subp.run([command, '--script', script_fname, '--preserve'],
                           cwd=d, stdout=subp.PIPE, stderr=subp.PIPE)
        except OSError as e:
            warn('Failed to run {}: {}'.format(command, e))
            return None

    if log_dir is not None:
        write_file(os.path.join(log_dir, BISECT_STDOUT_FILENAME), out.stdout)
        write_file(os.path.join(log_dir, BISECT_STDERR_FILENAME), out.stderr)
        debug('Wrote to {}, {}'.format(BISECT_STDOUT_FILENAME,
                                       BISECT_STDERR_FILENAME))
    if out.returncode != 0:
        warn('{} failed with exit code {}.'.format(command, out.returncode))
    return parse_bisect_output(out.stderr.decode('utf-8', errors='replace'))
