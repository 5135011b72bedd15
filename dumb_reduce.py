# A dumb reducer that only knows about lines and whitespace-separated
# tokens. Used when no structural reducer is available.

import re
from concurrent.futures import ThreadPoolExecutor

from structural_reducer import StructuralReducer, ReducerFailure
from melt_utils import info


def remove_elem_iter(data, pred, pool, jobs, size=1):
    '''Remove size consecutive elements from data, a list. If pred is
    still true for the reduced data, accept it. Repeat until no removal
    of size elements is accepted. Yield progressively minimized results.

    Up to jobs removals are tested at a time; the first one (in order of
    position) that pred accepts wins, so the result does not depend on
    which test finishes first.'''

    curr = 0
    elems_since_last = 0
    while data and elems_since_last < len(data):
        n = min(jobs, len(data) - elems_since_last)
        starts = [(curr + i) % len(data) for i in range(n)]
        candidates = [data[:s] + data[s+size:] for s in starts]
        results = list(pool.map(pred, candidates))
        for s, cand, ok in zip(starts, candidates, results):
            if ok:
                yield cand
                data = cand
                elems_since_last = 0
                curr = s
                break
        else:
            curr = (curr + n) % len(data)
            elems_since_last += n
        if curr >= len(data):
            curr = 0


def minimize(data, pred, pool, jobs):
    '''Remove chunks of halving size, down to single elements. Yield
    progressively smaller results.'''

    size = max(1, len(data) // 2)
    while True:
        for res in remove_elem_iter(data, pred, pool, jobs, size):
            data = res
            yield res
        if size == 1:
            break
        size = max(1, size // 2)


def unlines(xs):
    'Join xs (list of bytes) by a newline.'

    return b'\n'.join(xs)


def split_tokens(data):
    'Split into tokens, each one carrying the whitespace after it.'

    return re.findall(rb'\S+\s*|\s+', data)


def remove_lines(data, pred, pool, jobs):
    'Minimize by removing lines. Yield progressively smaller results.'

    return (unlines(x) for x in minimize(
        data.split(b'\n'), lambda x: pred(unlines(x), 'lines'), pool, jobs))


def remove_tokens(data, pred, pool, jobs):
    'Minimize by removing tokens. Yield progressively smaller results.'

    return (b''.join(x) for x in minimize(
        split_tokens(data), lambda x: pred(b''.join(x), 'tokens'),
        pool, jobs))


class DumbReducer(StructuralReducer):
    '''Removes lines, then tokens, until neither can be removed. Removing
    any single line or token from the result will make it
    uninteresting.'''

    name = 'lines'

    def reduce(self, source, grammar, check, jobs):
        if not check.evaluate(source, 'original'):
            raise ReducerFailure('The original input is not interesting.')

        jobs = max(1, jobs)
        res = source
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            while True:
                before = res
                for res in remove_lines(res, check.evaluate, pool, jobs):
                    info('\rremove_lines: {} bytes  '.format(len(res)),
                         end='')
                for res in remove_tokens(res, check.evaluate, pool, jobs):
                    info('\rremove_tokens: {} bytes  '.format(len(res)),
                         end='')
                if res == before:
                    break
        info('')
        return res

