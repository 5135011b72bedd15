#!/usr/bin/env python3

import argparse as argp
import os
import re
import shlex
import shutil
import sys

from melt_config import DEFAULT_COMMAND, ICE_MARKER_REGEX, ERROR_CATEGORY_REGEX
from melt_config import JOBS, OUTPUT_FILENAME, TIMEOUT_MS, GRAMMAR
from melt_config import FORMATTER_COMMAND, BISECT_COMMAND
from melt_utils import info, warn, set_verbosity, write_file
from melt_utils import QUIET, INFO, DEBUG
from fetch_issue import retrieve, FetchError
from ice_oracle import Oracle, BaselineNotInteresting
from run_compiler import InvocationSpec, SpawnFailure, compiler_version
from structural_reducer import ReducerFailure
from melt import prepare, reduce_with, select_reducer
from format_case import try_format, FormatResult, FORMAT_RESULT_TEXT
from bisect_rustc import bisect
from melt_report import render


STEPS = 5


def fatal(s, exitcode=1):
    print('Error: ' + s, file=sys.stderr)
    sys.exit(exitcode)


def parse_args(argv=None):
    parser = argp.ArgumentParser(
        description='Minimize files that trigger internal compiler errors '
        '(ICEs). Options go before ICE; everything after ICE is the '
        'compiler command line.')
    parser.add_argument(
        '--allow-errors', action='store_true',
        help='Allow introducing type/syntax/borrow errors to achieve '
        'smaller tests.')
    parser.add_argument(
        '-b', '--bisect', action='store_true',
        help='Run cargo-bisect-rustc; takes a long time, but is very '
        'helpful!')
    parser.add_argument(
        '-d', '--debug', action='store_true',
        help='Run a single thread and show stdout, stderr of the compiler.')
    parser.add_argument(
        '--interesting-stderr', metavar='REGEX', default=ICE_MARKER_REGEX,
        help='Regex to match stderr of the ICE.')
    parser.add_argument(
        '--uninteresting-stderr', metavar='REGEX',
        help='Regex to match *uninteresting* stderr, overrides the '
        'interesting regex.')
    parser.add_argument(
        '--any-ice', action='store_true',
        help='Accept an ICE raised anywhere in the compiler, not only at '
        'the location of the original one.')
    parser.add_argument(
        '--error-category-regex', metavar='REGEX',
        default=ERROR_CATEGORY_REGEX,
        help='Regex matching compiler errors; the named group "category" '
        'names the kind of error. Candidates with new kinds of errors are '
        'rejected.')
    parser.add_argument(
        '-j', '--jobs', type=int, default=JOBS,
        help='Number of threads (default: %(default)s).')
    parser.add_argument(
        '--markdown', action='store_true', help='Also output Markdown.')
    parser.add_argument(
        '-o', '--output', default=OUTPUT_FILENAME,
        help='Where to save the reduced test case (default: %(default)s).')
    parser.add_argument(
        '--timeout', type=int, default=TIMEOUT_MS, metavar='MS',
        help='Timeout for one compiler run in milliseconds '
        '(default: %(default)s).')
    parser.add_argument(
        '--reducer', choices=['auto', 'treereduce', 'lines'],
        default='auto',
        help='Reducer to use; auto is treereduce if installed.')
    parser.add_argument(
        '--no-format', action='store_true',
        help='Do not try to format the reduced file.')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-q', '--quiet', action='store_true')
    verbosity.add_argument('-v', '--verbose', action='store_true')
    parser.add_argument(
        'source', metavar='ICE',
        help='Source file that causes the ICE, or rust-lang/rust issue '
        'number like #12345.')
    parser.add_argument(
        'check', metavar='CMD', nargs=argp.REMAINDER,
        help='Compiler command line without the file '
        '(default: {}).'.format(' '.join(DEFAULT_COMMAND)))
    args = parser.parse_args(argv)

    if args.check and args.check[0] == '--':
        args.check = args.check[1:]
    if not args.check:
        args.check = list(DEFAULT_COMMAND)
    if args.jobs < 1:
        parser.error('--jobs must be at least 1')
    if args.timeout < 1:
        parser.error('--timeout must be at least 1')
    if args.debug:
        args.jobs = 1
    return args


def check_prereqs(args):
    if not args.no_format and shutil.which(FORMATTER_COMMAND[0]) is None:
        warn('No {} found in PATH. Formatting will fail.'.format(
            FORMATTER_COMMAND[0]))
    if args.bisect and shutil.which(BISECT_COMMAND) is None:
        fatal('No {} in PATH.'.format(BISECT_COMMAND))


def make_oracle(args):
    return Oracle(marker=args.interesting_stderr,
                  uninteresting=args.uninteresting_stderr,
                  match_location=not args.any_ice,
                  spurious_error_guard=not args.allow_errors,
                  error_category_regex=args.error_category_regex)


def markdown_filename(output):
    return os.path.splitext(output)[0] + '.md'


def main(argv=None):
    args = parse_args(argv)
    if args.debug or args.verbose:
        set_verbosity(DEBUG)
    elif args.quiet:
        set_verbosity(QUIET)
    else:
        set_verbosity(INFO)
    check_prereqs(args)

    try:
        info('Step 1/{}: Retrieving...'.format(STEPS))
        source = retrieve(args.source)

        info('Step 2/{}: Configuring...'.format(STEPS))
        try:
            oracle = make_oracle(args)
        except re.error as e:
            fatal('Invalid regex: {}'.format(e))
        spec = InvocationSpec(args.check[0], args.check[1:],
                              args.timeout / 1000)
        reducer = select_reducer(args.reducer, GRAMMAR)

        check = prepare(source, oracle, spec, args.jobs)

        info('Step 3/{}: Reducing...'.format(STEPS))
        result = reduce_with(check, source, args.jobs, reducer, GRAMMAR)
    except (FetchError, BaselineNotInteresting, ReducerFailure,
            SpawnFailure) as e:
        fatal(str(e))

    did_reduce = result.final_source != source
    if did_reduce:
        info('Reduced {} -> {} lines ({} -> {} bytes).'.format(
            result.original_line_count, result.final_line_count,
            len(source), len(result.final_source)))
    elif args.allow_errors:
        info('Unable to reduce! Sorry.')
        info('If you think this test case is reducible, please file an '
             'issue!')
    else:
        info('Unable to reduce, try --allow-errors.')

    fmt_result = None
    if args.no_format:
        info('Step 4/{}: Skipping formatting.'.format(STEPS))
    else:
        info('Step 4/{}: Formatting...'.format(STEPS))
        result, fmt_result = try_format(result, check)
        if fmt_result != FormatResult.couldnt_format:
            info(FORMAT_RESULT_TEXT[fmt_result])

    bisection = None
    if args.bisect:
        info('Step 5/{}: Bisecting (this can take a very long time)...'.format(
            STEPS))
        bisection = bisect(result.final_source, args.check[1:], oracle,
                           check.fingerprint, spec.timeout,
                           log_dir=os.getcwd())
        if bisection is None:
            warn('Bisection was inconclusive.')
        else:
            info('Regression in {} .. {}'.format(
                bisection.regressed_start_version,
                bisection.regressed_end_version))
    else:
        warn('Skipping bisection! Try adding --bisect.')
        info("Bisecting takes a long time, but it's very helpful.")

    write_file(args.output, result.final_source)
    info('File written to {}'.format(args.output))

    if args.markdown:
        report = render(result, bisection, did_reduce, fmt_result,
                        compiler_version(args.check),
                        ' '.join(shlex.quote(a) for a in sys.argv))
        fname = markdown_filename(args.output)
        write_file(fname, report, mode='w')
        info('Wrote Markdown report to {}'.format(fname))


if __name__ == '__main__':
    main()
