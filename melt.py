'''Reduce an ICE-triggering file while it keeps producing the same ICE.'''

import shutil
import sys
import threading
from collections import namedtuple

from melt_config import GRAMMAR, JOBS, TREEREDUCE_COMMAND
from melt_utils import count_lines, debug, info
from melt_utils import verbosity, DEBUG
from run_compiler import run_in_scratch_dir, SpawnFailure
from ice_oracle import NotInteresting, not_interesting
from structural_reducer import Candidate, ReducerFailure
from dumb_reduce import DumbReducer
from run_treereduce import TreeReducer


class MinimizationResult(namedtuple('MinimizationResult', [
        'final_source', 'original_line_count', 'final_line_count'])):
    __slots__ = ()

    @classmethod
    def of(cls, original, final):
        return cls(final, count_lines(original), count_lines(final))

    def with_source(self, source):
        return self._replace(final_source=source,
                             final_line_count=count_lines(source))


class InterestingnessCheck(object):
    '''The predicate handed to reducers: runs the compiler on a candidate
    and classifies the result against a fixed Fingerprint. Safe to call
    from several threads at once.'''

    def __init__(self, oracle, fingerprint, spec, tmp_root=None,
                 show_output=False):
        self.oracle = oracle
        self.fingerprint = fingerprint
        self.spec = spec
        self.tmp_root = tmp_root
        self.show_output = show_output
        self._lock = threading.Lock()
        self.num_tests = 0
        self.num_interesting = 0

    def verdict(self, candidate):
        'Return the Verdict for a Candidate.'

        try:
            result = run_in_scratch_dir(self.spec, candidate.source,
                                        self.tmp_root)
        except (OSError, SpawnFailure) as e:
            debug('Could not test candidate from {}: {}'.format(
                candidate.origin, e))
            v = not_interesting(NotInteresting.evaluation_error)
        else:
            if self.show_output:
                sys.stderr.buffer.write(result.stdout + result.stderr)
                sys.stderr.flush()
            v = self.oracle.classify(result, self.fingerprint)
        with self._lock:
            self.num_tests += 1
            if v.interesting:
                self.num_interesting += 1
        debug('Candidate from {} ({} bytes): {}'.format(
            candidate.origin, len(candidate.source), v))
        return v

    def evaluate(self, source, origin=None):
        'True if the source still reproduces the ICE.'
        return self.verdict(Candidate(source, origin)).interesting


def baseline(source, oracle, spec, tmp_root=None):
    '''Run the original source once and return its Fingerprint. Raises
    BaselineNotInteresting if there is no ICE and SpawnFailure if the
    compiler cannot be run.'''

    debug('Doing initial check for ICE')
    result = run_in_scratch_dir(spec, source, tmp_root)
    fp = oracle.fingerprint(result)
    debug('Initial stderr:\n' + result.stderr_text())
    debug('Fingerprint: {}'.format(fp))
    return fp


def select_reducer(name='auto', grammar=GRAMMAR):
    '''Return a reducer by name. 'auto' is treereduce if it is installed,
    the dumb reducer if not.'''

    if name == 'auto':
        if shutil.which(TREEREDUCE_COMMAND.format(grammar=grammar)):
            name = 'treereduce'
        else:
            info('No {} in PATH, using the dumb line reducer.'.format(
                TREEREDUCE_COMMAND.format(grammar=grammar)))
            name = 'lines'
    if name == 'treereduce':
        return TreeReducer()
    elif name == 'lines':
        return DumbReducer()
    raise ValueError('Unknown reducer: ' + name)


def prepare(original_source, oracle, spec, worker_count=JOBS,
            tmp_root=None):
    '''Run the baseline and return the InterestingnessCheck every later
    step of the session uses, so they all share one Fingerprint.'''

    fp = baseline(original_source, oracle, spec, tmp_root)
    show_output = verbosity() >= DEBUG and worker_count == 1
    return InterestingnessCheck(oracle, fp, spec, tmp_root, show_output)


def reduce_with(check, original_source, worker_count=JOBS, reducer=None,
                grammar=GRAMMAR):
    '''Minimize original_source with reducer and return a
    MinimizationResult. The result always passes check.'''

    if reducer is None:
        reducer = select_reducer(grammar=grammar)
    try:
        reduced = reducer.reduce(original_source, grammar, check,
                                 worker_count)
    except ReducerFailure:
        raise
    except Exception as e:
        raise ReducerFailure('{} reducer failed: {}'.format(
            reducer.name, e)) from e
    # External reducers test candidates in their own processes.
    if check.num_tests:
        info('Tested {} candidates, {} interesting.'.format(
            check.num_tests, check.num_interesting))

    if (len(reduced) > len(original_source) or
            count_lines(reduced) > count_lines(original_source)):
        info('Reducer returned a larger file; keeping the original.')
        reduced = original_source
    elif reduced != original_source:
        v = check.verdict(Candidate(reduced, 'final'))
        if not v.interesting:
            raise ReducerFailure(
                'Reduced case produces a different result: {}'.format(v))
    return MinimizationResult.of(original_source, reduced)


def reduce(original_source, oracle, spec, worker_count=JOBS, reducer=None,
           grammar=GRAMMAR, tmp_root=None):
    '''Baseline, then minimize. Raises BaselineNotInteresting before the
    reducer is touched if the original shows no ICE.'''

    check = prepare(original_source, oracle, spec, worker_count, tmp_root)
    return reduce_with(check, original_source, worker_count, reducer,
                       grammar)
