import os
import subprocess as subp
import tempfile
from enum import Enum

from melt_config import FORMATTER_COMMAND, FORMATTER_TIMEOUT, TMP_PREFIX
from melt_utils import read_file, write_file, count_lines, debug, info, warn


class FormatResult(Enum):
    couldnt_format = 1
    no_change = 2
    no_ice = 3
    changed = 4


FORMAT_RESULT_TEXT = {
    FormatResult.couldnt_format: "❌ Couldn't format",
    FormatResult.no_change: '✅ No change, already formatted',
    FormatResult.no_ice: '❌ Formatting removed ICE',
    FormatResult.changed: '✅ Formatted!',
}


def run_formatter(data, formatter=FORMATTER_COMMAND,
                  timeout=FORMATTER_TIMEOUT, suffix='.rs'):
    'Format data with formatter. Returns None if the formatter fails.'

    with tempfile.TemporaryDirectory(prefix=TMP_PREFIX) as d:
        fname = os.path.join(d, 'melted' + suffix)
        try:
            write_file(fname, data)
            subp.run(list(formatter) + [fname], cwd=d, check=True,
                     stdin=subp.DEVNULL, stdout=subp.DEVNULL,
                     stderr=subp.DEVNULL, timeout=timeout)
            return read_file(fname)
        except (OSError, subp.CalledProcessError, subp.TimeoutExpired) as e:
            debug('Formatting failed: {}'.format(e))
            return None


def try_format(result, check, formatter=FORMATTER_COMMAND,
               timeout=FORMATTER_TIMEOUT):
    '''Format the minimized source, keeping the formatted version only if
    it is still interesting. Returns (MinimizationResult, FormatResult);
    unless the FormatResult is changed, the source is returned
    untouched.'''

    debug('Formatting reduced file with ' + ' '.join(formatter))
    formatted = run_formatter(result.final_source, formatter, timeout,
                              check.spec.suffix)
    if formatted is None:
        warn('Failed to format with ' + formatter[0])
        return result, FormatResult.couldnt_format
    if formatted == result.final_source:
        return result, FormatResult.no_change
    if count_lines(formatted) > result.original_line_count:
        info('Formatting made the file longer than the original; '
             'keeping it unformatted.')
        return result, FormatResult.couldnt_format
    if not check.evaluate(formatted, 'formatter'):
        return result, FormatResult.no_ice
    return result.with_source(formatted), FormatResult.changed
