'''Decide whether a compiler run still reproduces the original ICE.

The Oracle is configured once and is then a pure function of a RunResult
and the Fingerprint taken from the original (baseline) run.'''

import re
from collections import namedtuple
from enum import Enum

from melt_config import ICE_MARKER_REGEX, ICE_LOCATION_REGEXES
from melt_config import ERROR_CATEGORY_REGEX, GENERIC_ERROR_CATEGORY
from melt_config import TMP_PREFIX


class BaselineNotInteresting(Exception):
    'The original input does not produce an ICE; nothing to reduce.'
    pass


class NotInteresting(Enum):
    'Why a candidate was rejected.'

    no_failure = 1          # No ICE at all
    different_failure = 2   # Some other ICE, or an uninteresting one
    new_spurious_error = 3  # Same ICE, but also new unrelated errors
    timed_out = 4
    evaluation_error = 5    # Could not write or run the candidate


class Verdict(namedtuple('Verdict', ['interesting', 'reason'])):
    __slots__ = ()

    def __str__(self):
        if self.interesting:
            return 'interesting'
        return 'not interesting ({})'.format(self.reason.name)


INTERESTING = Verdict(True, None)


def not_interesting(reason):
    return Verdict(False, reason)


# location may be None, error_categories is a frozenset of str
Fingerprint = namedtuple('Fingerprint',
                         ['marker', 'location', 'error_categories'])


def fingerprint_to_dict(fp):
    return {'marker': fp.marker, 'location': fp.location,
            'error_categories': sorted(fp.error_categories)}


def fingerprint_from_dict(d):
    return Fingerprint(d['marker'], d['location'],
                       frozenset(d['error_categories']))


def error_categories(stderr, regex=ERROR_CATEGORY_REGEX):
    'Return the set of error categories found in stderr (str).'

    return frozenset(m.groupdict().get('category') or GENERIC_ERROR_CATEGORY
                     for m in re.finditer(regex, stderr))


def find_ice_location(stderr):
    '''Find the path:line:col in the compiler sources where the ICE was
    raised. May return None.'''

    for rx in ICE_LOCATION_REGEXES:
        for m in re.finditer(rx, stderr):
            loc = m.group('loc')
            # A location in the tested file itself would change with
            # every candidate.
            if TMP_PREFIX not in loc:
                return loc
    return None


class Oracle(object):
    'Classifies compiler runs against a fixed Fingerprint.'

    def __init__(self, marker=ICE_MARKER_REGEX, uninteresting=None,
                 match_location=True, spurious_error_guard=True,
                 error_category_regex=ERROR_CATEGORY_REGEX):
        self.marker = marker
        self.uninteresting = uninteresting
        self.match_location = match_location
        self.spurious_error_guard = spurious_error_guard
        self.error_category_regex = error_category_regex
        self._marker_re = re.compile(marker)
        self._any_ice_re = re.compile(ICE_MARKER_REGEX)
        self._uninteresting_re = (re.compile(uninteresting)
                                  if uninteresting else None)
        self._categories_re = re.compile(error_category_regex)

    def to_dict(self):
        return {'marker': self.marker,
                'uninteresting': self.uninteresting,
                'match_location': self.match_location,
                'spurious_error_guard': self.spurious_error_guard,
                'error_category_regex': self.error_category_regex}

    @classmethod
    def from_dict(cls, d):
        return cls(**d)

    def categories(self, stderr):
        return error_categories(stderr, self._categories_re)

    def fingerprint(self, result):
        '''Compute the Fingerprint of the baseline run. Raises
        BaselineNotInteresting if the run shows no ICE.'''

        if result.timed_out:
            raise BaselineNotInteresting(
                'The compiler timed out on the original file. '
                'Try a larger --timeout.')
        stderr = result.stderr_text()
        if not self._marker_re.search(stderr):
            raise BaselineNotInteresting(
                "The file doesn't seem to produce an internal compiler "
                "error with the given command.")
        if self._uninteresting_re and self._uninteresting_re.search(stderr):
            raise BaselineNotInteresting(
                'The output of the original file matches the '
                'uninteresting regex.')
        location = find_ice_location(stderr) if self.match_location else None
        return Fingerprint(self.marker, location, self.categories(stderr))

    def classify(self, result, fp):
        'Return the Verdict for result with respect to the Fingerprint fp.'

        assert fp.marker == self.marker, (fp.marker, self.marker)

        if result.timed_out:
            return not_interesting(NotInteresting.timed_out)
        stderr = result.stderr_text()

        if self._uninteresting_re and self._uninteresting_re.search(stderr):
            return not_interesting(NotInteresting.different_failure)

        if not self._marker_re.search(stderr):
            if self._any_ice_re.search(stderr):
                return not_interesting(NotInteresting.different_failure)
            return not_interesting(NotInteresting.no_failure)

        if fp.location and fp.location not in stderr:
            return not_interesting(NotInteresting.different_failure)

        if self.spurious_error_guard:
            if self.categories(stderr) - fp.error_categories:
                return not_interesting(NotInteresting.new_spurious_error)

        return INTERESTING
