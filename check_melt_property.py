#!/usr/bin/env python3

# Interestingness test for external tools (treereduce,
# cargo-bisect-rustc). Exits 0 if the file reproduces the session's ICE
# and 1 if not; --invert swaps the two.

import argparse as argp
import json
import sys

from ice_oracle import Oracle, fingerprint_to_dict, fingerprint_from_dict
from run_compiler import InvocationSpec, run_in_scratch_dir, SpawnFailure


def save_session(path, oracle, fingerprint, spec):
    'Save what is needed to give the same verdicts in another process.'

    with open(path, 'w') as f:
        json.dump({'oracle': oracle.to_dict(),
                   'fingerprint': fingerprint_to_dict(fingerprint),
                   'command': spec.command, 'args': spec.args,
                   'timeout': spec.timeout, 'suffix': spec.suffix}, f)


def load_session(path):
    'Return (oracle, fingerprint, spec) from a session file.'

    with open(path) as f:
        d = json.load(f)
    return (Oracle.from_dict(d['oracle']),
            fingerprint_from_dict(d['fingerprint']),
            InvocationSpec(d['command'], d['args'], d['timeout'],
                           d['suffix']))


def is_interesting(session_fname, fname):
    oracle, fp, spec = load_session(session_fname)
    try:
        with open(fname, 'rb') as f:
            data = f.read()
        result = run_in_scratch_dir(spec, data)
    except (OSError, SpawnFailure) as e:
        print('FATAL: {}'.format(e), file=sys.stderr)
        return False
    return oracle.classify(result, fp).interesting


def main(argv=None):
    parser = argp.ArgumentParser(
        description='Check if a file reproduces the ICE of a session.')
    parser.add_argument('--invert', action='store_true',
                        help='Exit 1 if the file is interesting, 0 if not.')
    parser.add_argument('session', help='Session file written by icemelt.')
    parser.add_argument('file', help='The file to test.')
    args = parser.parse_args(argv)

    interesting = is_interesting(args.session, args.file)
    if interesting != args.invert:
        sys.exit(0)
    else:
        sys.exit(1)


if __name__ == '__main__':
    main()
