'''The interface between icemelt and the reducer that proposes smaller
candidates.

A reducer gets the original source, the name of its grammar, a check and
the number of jobs. It calls check.evaluate(source, origin) on as many
candidates as it likes, from up to that many threads at once, and returns
the smallest source it found interesting. A reducer that cannot do its
job raises ReducerFailure.'''

from collections import namedtuple


class ReducerFailure(Exception):
    'The reducer failed; minimization cannot proceed.'
    pass


# origin identifies the edit that produced the candidate, for logging.
Candidate = namedtuple('Candidate', ['source', 'origin'])


class StructuralReducer(object):
    name = None

    def reduce(self, source, grammar, check, jobs):
        raise NotImplementedError
