import os
import stat
import sys

import pytest

from run_compiler import InvocationSpec
from melt_utils import set_verbosity, INFO

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
FAKE_RUSTC = os.path.join(TESTS_DIR, 'fake_rustc.py')
FAKE_RUSTFMT = os.path.join(TESTS_DIR, 'fake_rustfmt.py')
FAKE_TREEREDUCE = os.path.join(TESTS_DIR, 'fake_treereduce.py')
FAKE_BISECT = os.path.join(TESTS_DIR, 'fake_cargo_bisect_rustc.py')

ICE_SOURCE = b'''\
fn main() {
    let_x = 1;
    filler_one();
    x_used(needed);
    filler_two();
}
'''

CLEAN_SOURCE = b'''\
fn main() {
    println!("hi");
}
'''


def make_executable(path, target):
    'Write a shell wrapper at path running the python script target.'
    with open(path, 'w') as f:
        f.write('#!/bin/sh\nexec {} {} "$@"\n'.format(sys.executable, target))
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR)
    return path


@pytest.fixture
def rustc_spec():
    return InvocationSpec(sys.executable, [FAKE_RUSTC], timeout=30)


@pytest.fixture
def scratch(tmp_path):
    d = tmp_path / 'scratch'
    d.mkdir()
    return str(d)


@pytest.fixture
def source_file(tmp_path):
    def write(data, name='ice.rs'):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)
    return write


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    # fake_rustc moves its ICEs around under a nightly toolchain
    monkeypatch.delenv('RUSTUP_TOOLCHAIN', raising=False)
    set_verbosity(INFO)
