import os

##### These are probably the most important variables to change:

# The compiler command line to test when none is given on the command
# line. The file to test is appended, or substituted for '@@' if the
# command contains it.
DEFAULT_COMMAND = ['rustc']

# milliseconds; a compiler run taking longer than this is killed and
# counted as not reproducing the ICE
TIMEOUT_MS = 2000

# Where to save the reduced test case
OUTPUT_FILENAME = 'melted.rs'

# Number of parallel compiler runs during reduction
JOBS = os.cpu_count() or 1

##### You might get away without changing these:

# stderr matching this means the compiler crashed instead of producing
# normal diagnostics
ICE_MARKER_REGEX = (r'(internal compiler error:|'
                    r'error: the compiler unexpectedly panicked\. '
                    r'this is a bug\.)')

# Finds the location in the compiler's own source where the ICE was
# raised. Tried in order; the first one matching wins.
ICE_LOCATION_REGEXES = [
    r"internal compiler error: (?P<loc>[^\s:]+\.rs:\d+:\d+)",
    r"panicked at (?:'.*?', )?(?P<loc>[^\s:']+\.rs:\d+:\d+)",
]

# Each match is one error category. The named group 'category' gives
# its name, e.g. E0425; matches without it count as the generic
# category 'error'. A candidate with categories not in the original
# output is rejected unless --allow-errors is given.
ERROR_CATEGORY_REGEX = (
    r'(?m)^error(?:\[(?P<category>E\d{4})\])?: '
    r'(?!internal compiler error|the compiler unexpectedly panicked'
    r'|aborting due to)')

# Category used for errors that carry no code
GENERIC_ERROR_CATEGORY = 'error'

# Replaced by the path of the tested file in compiler command lines
FILE_PLACEHOLDER = '@@'

# Suffix of temporary files given to the compiler, the formatter and
# the reducer
SOURCE_SUFFIX = '.rs'

# Grammar name given to the structural reducer
GRAMMAR = 'rust'

# Formatter to run on the reduced file
FORMATTER_COMMAND = ['rustfmt']

# seconds
FORMATTER_TIMEOUT = 30

# The structural reducer executable, by grammar
TREEREDUCE_COMMAND = 'treereduce-{grammar}'

# Give the structural reducer this long to complete before killing it
# (seconds)
TREEREDUCE_TIMEOUT = 60*60

# cargo-bisect-rustc executable and the toolchain the reproduction
# script is sanity-checked with before bisecting
BISECT_COMMAND = 'cargo-bisect-rustc'
BISECT_CHECK_TOOLCHAIN = 'nightly'

# cargo-bisect-rustc separates the sections of its final report with
# lines of these
BISECT_HEADING = '=' * 82

# Save the output of cargo-bisect-rustc here
BISECT_STDOUT_FILENAME = 'cargo-bisect-rustc.stdout.txt'
BISECT_STDERR_FILENAME = 'cargo-bisect-rustc.stderr.txt'

##### Generally you should not need to change anything below this.

ISSUE_URL = 'https://api.github.com/repos/rust-lang/rust/issues/{number}'
GITHUB_TOKEN_ENV_VAR = 'GITHUB_TOKEN'
USER_AGENT = 'icemelt'
FETCH_TIMEOUT = 30

VERSION = '0.1.0'
PROJECT_URL = 'https://github.com/icemelt/icemelt'

# Prefix for all temporary files and directories
TMP_PREFIX = 'icemelt-'
