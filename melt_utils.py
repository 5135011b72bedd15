import os
import sys
import copy

QUIET = 0
INFO = 1
DEBUG = 2

_VERBOSITY = INFO


def set_verbosity(level):
    'Set the level below which messages are not printed.'
    global _VERBOSITY
    _VERBOSITY = level


def verbosity():
    return _VERBOSITY


def warn(msg):
    print('WARNING: ' + msg, file=sys.stderr)


def info(msg, end='\n'):
    if _VERBOSITY >= INFO:
        print(msg, file=sys.stderr, end=end)
        sys.stderr.flush()


def debug(msg):
    if _VERBOSITY >= DEBUG:
        print(msg, file=sys.stderr)


def env_with_tmpdir(path):
    'Return a copy of os.environ with TMPDIR & friends set.'
    env = copy.copy(os.environ)
    env['TMPDIR'] = path
    env['TMP'] = path
    env['TEMP'] = path
    return env


def count_lines(data):
    'Number of lines in data (bytes). A missing final newline is OK.'
    if not data:
        return 0
    n = data.count(b'\n')
    if not data.endswith(b'\n'):
        n += 1
    return n


def write_file(path, contents, mode='wb'):
    with open(path, mode) as f:
        f.write(contents)


def read_file(path):
    'Read an entire file as binary.'
    with open(path, 'rb') as f:
        return f.read()
