import pytest

from ice_oracle import Oracle, BaselineNotInteresting, NotInteresting
from ice_oracle import Fingerprint, error_categories, find_ice_location
from ice_oracle import fingerprint_to_dict, fingerprint_from_dict
from run_compiler import RunResult

ICE = (b'error: internal compiler error: '
       b'compiler/rustc_middle/src/ty/mod.rs:123:45: unexpected type\n'
       b"\nthread 'rustc' panicked at compiler/rustc_middle/src/ty/mod.rs"
       b':123:45:\nBox<dyn Any>\n')
OTHER_ICE = (b'error: internal compiler error: '
             b'compiler/rustc_hir/src/lib.rs:7:9: no type\n')
PANIC = (b"thread 'rustc' panicked at 'called `Option::unwrap()` on a "
         b"`None` value', compiler/rustc_lint/src/x.rs:88:14\n"
         b'error: the compiler unexpectedly panicked. this is a bug.\n')
E0425 = b'error[E0425]: cannot find value `x` in this scope\n'
E0308 = b'error[E0308]: mismatched types\n'


def result(stderr, status=101, timed_out=False):
    if timed_out:
        status = None
    return RunResult(status, b'', stderr, 0.1, timed_out)


def test_fingerprint_of_ice():
    fp = Oracle().fingerprint(result(E0308 + ICE))
    assert fp.location == 'compiler/rustc_middle/src/ty/mod.rs:123:45'
    assert fp.error_categories == frozenset(['E0308'])


def test_fingerprint_of_old_style_panic():
    fp = Oracle().fingerprint(result(PANIC))
    assert fp.location == 'compiler/rustc_lint/src/x.rs:88:14'


def test_fingerprint_without_location_matching():
    fp = Oracle(match_location=False).fingerprint(result(ICE))
    assert fp.location is None


@pytest.mark.parametrize('r', [
    result(b'', status=0),
    result(E0425, status=1),
    result(ICE, timed_out=True),
])
def test_baseline_without_ice_fails(r):
    with pytest.raises(BaselineNotInteresting):
        Oracle().fingerprint(r)


def test_baseline_matching_uninteresting_fails():
    with pytest.raises(BaselineNotInteresting):
        Oracle(uninteresting='unexpected type').fingerprint(result(ICE))


def test_same_ice_is_interesting():
    o = Oracle()
    fp = o.fingerprint(result(ICE))
    v = o.classify(result(ICE), fp)
    assert v.interesting
    assert v.reason is None


def test_no_failure():
    o = Oracle()
    fp = o.fingerprint(result(ICE))
    v = o.classify(result(b'', status=0), fp)
    assert not v.interesting
    assert v.reason == NotInteresting.no_failure


def test_ice_elsewhere_is_different_failure():
    o = Oracle()
    fp = o.fingerprint(result(ICE))
    assert o.classify(result(OTHER_ICE), fp).reason == \
        NotInteresting.different_failure


def test_ice_elsewhere_is_interesting_with_any_ice():
    o = Oracle(match_location=False)
    fp = o.fingerprint(result(ICE))
    assert o.classify(result(OTHER_ICE), fp).interesting


def test_custom_marker_distinguishes_ices():
    o = Oracle(marker='unexpected type', match_location=False)
    fp = o.fingerprint(result(ICE))
    assert o.classify(result(ICE), fp).interesting
    assert o.classify(result(OTHER_ICE), fp).reason == \
        NotInteresting.different_failure
    assert o.classify(result(E0425, status=1), fp).reason == \
        NotInteresting.no_failure


def test_timeout_is_not_interesting():
    o = Oracle()
    fp = o.fingerprint(result(ICE))
    v = o.classify(result(b'', timed_out=True), fp)
    assert v.reason == NotInteresting.timed_out


def test_uninteresting_regex_overrides():
    o = Oracle(uninteresting='E0308')
    fp = o.fingerprint(result(ICE))
    v = o.classify(result(E0308 + ICE), fp)
    assert v.reason == NotInteresting.different_failure


def test_new_error_is_spurious_with_guard():
    o = Oracle()
    fp = o.fingerprint(result(ICE))
    v = o.classify(result(E0425 + ICE), fp)
    assert not v.interesting
    assert v.reason == NotInteresting.new_spurious_error


def test_new_error_is_accepted_without_guard():
    o = Oracle(spurious_error_guard=False)
    fp = o.fingerprint(result(ICE))
    assert o.classify(result(E0425 + ICE), fp).interesting


def test_errors_already_in_baseline_are_accepted():
    o = Oracle()
    fp = o.fingerprint(result(E0425 + ICE))
    assert o.classify(result(E0425 + ICE), fp).interesting
    assert o.classify(result(ICE), fp).interesting
    assert o.classify(result(E0308 + ICE), fp).reason == \
        NotInteresting.new_spurious_error


def test_plain_error_is_a_category():
    o = Oracle()
    fp = o.fingerprint(result(ICE))
    v = o.classify(result(b'error: expected one of `;`\n' + ICE), fp)
    assert v.reason == NotInteresting.new_spurious_error


def test_error_categories():
    stderr = (E0425 + E0308 + ICE + b'error: expected `;`\n'
              b'error: aborting due to 3 previous errors\n').decode()
    assert error_categories(stderr) == frozenset(['E0425', 'E0308', 'error'])


def test_custom_error_category_regex():
    o = Oracle(error_category_regex=r'(?m)^warning: (?P<category>\w+)')
    fp = o.fingerprint(result(ICE))
    assert o.classify(result(E0425 + ICE), fp).interesting
    assert o.classify(result(b'warning: unused\n' + ICE), fp).reason == \
        NotInteresting.new_spurious_error


def test_location_in_tested_file_is_ignored():
    stderr = ('error: internal compiler error: '
              '/tmp/icemelt-abc/candidate.rs:3:1: oops\n')
    assert find_ice_location(stderr) is None


def test_serialization_keeps_verdicts():
    o = Oracle(uninteresting='E0308', spurious_error_guard=False)
    fp = o.fingerprint(result(E0425 + ICE))
    o2 = Oracle.from_dict(o.to_dict())
    fp2 = fingerprint_from_dict(fingerprint_to_dict(fp))
    assert fp2 == fp
    for r in [result(ICE), result(OTHER_ICE), result(E0308 + ICE),
              result(b'', status=0)]:
        assert o2.classify(r, fp2) == o.classify(r, fp)


def test_fingerprint_is_immutable():
    fp = Fingerprint('x', None, frozenset())
    with pytest.raises(AttributeError):
        fp.location = 'y'
