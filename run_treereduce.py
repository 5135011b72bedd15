import os
import shutil
import subprocess as subp
import sys
import tempfile

from melt_config import TREEREDUCE_COMMAND, TREEREDUCE_TIMEOUT
from melt_config import FILE_PLACEHOLDER, TMP_PREFIX
from melt_utils import env_with_tmpdir, read_file, write_file, debug, info
from melt_utils import verbosity, DEBUG
from structural_reducer import StructuralReducer, ReducerFailure
import check_melt_property


def property_command(session_fname, suffix):
    'The interestingness command line handed to treereduce.'

    return [sys.executable, os.path.abspath(check_melt_property.__file__),
            session_fname, FILE_PLACEHOLDER + suffix]


class TreeReducer(StructuralReducer):
    '''Runs treereduce, which parses the source with tree-sitter and
    deletes syntax tree nodes, with check_melt_property.py as its
    interestingness test.'''

    name = 'treereduce'

    def __init__(self, timeout=TREEREDUCE_TIMEOUT):
        self.timeout = timeout

    def reduce(self, source, grammar, check, jobs):
        exe = TREEREDUCE_COMMAND.format(grammar=grammar)
        if shutil.which(exe) is None:
            raise ReducerFailure('No {} in PATH.'.format(exe))

        suffix = check.spec.suffix
        with tempfile.TemporaryDirectory(prefix=TMP_PREFIX) as tree_dir:
            # treereduce and the compilers it runs may leave files, so
            # point TMPDIR below our temp dir
            env_tmpdir = os.path.join(tree_dir, 'tmp')
            os.mkdir(env_tmpdir)
            session_fname = os.path.join(tree_dir, 'session.json')
            src_fname = os.path.join(tree_dir, 'original' + suffix)
            out_fname = os.path.join(tree_dir, 'reduced' + suffix)
            check_melt_property.save_session(
                session_fname, check.oracle, check.fingerprint, check.spec)
            write_file(src_fname, source)

            cmd = [exe, '--jobs', str(jobs), '--source', src_fname,
                   '--output', out_fname, '--interesting-exit-code', '0',
                   '--'] + property_command(session_fname, suffix)
            debug('Running ' + ' '.join(cmd))
            quiet = verbosity() < DEBUG
            info('Running {}...'.format(exe))
            try:
                p = subp.run(cmd, env=env_with_tmpdir(env_tmpdir),
                             cwd=tree_dir, timeout=self.timeout,
                             stdout=subp.DEVNULL if quiet else None,
                             stderr=subp.PIPE if quiet else None)
            except subp.TimeoutExpired:
                raise ReducerFailure('{} did not finish in {} seconds.'.format(
                    exe, self.timeout))
            except OSError as e:
                raise ReducerFailure('Failed to run {}: {}'.format(exe, e))
            if p.returncode != 0:
                msg = '{} failed with exit code {}.'.format(exe, p.returncode)
                if p.stderr:
                    msg += '\n' + p.stderr.decode('utf-8', errors='replace')
                raise ReducerFailure(msg)
            try:
                return read_file(out_fname)
            except OSError as e:
                raise ReducerFailure(
                    '{} produced no output: {}'.format(exe, e))
