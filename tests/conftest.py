import stat
import sys
from pathlib import Path

import pytest

from grntest.grntest_config import TesterConfig

FAKE_GROONGA = """\
#!{python}
# Minimal stand-in for `groonga -n DB`: one response per command line.
import sys

assert sys.argv[1] == "-n", sys.argv

def respond(data):
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()

loading = False
n_records = 0
for line in sys.stdin.buffer:
    body = line.strip()
    if loading:
        if body.startswith(b"{{"):
            n_records += 1
        elif body == b"]":
            loading = False
            respond(b"[[0,1700000000.0,0.25],%d]" % n_records)
        continue
    if not body:
        continue
    if body.startswith(b"load"):
        loading = True
        n_records = 0
    elif body.startswith(b"dump"):
        respond(b"table_create Users TABLE_NO_KEY")
    elif body.startswith(b"select Missing"):
        respond(b'[[-22,1700000000.0,0.001,"invalid table name: <Missing>","backtrace"],false]')
    else:
        respond(b"[[0,1700000000.0,0.001],true]")
"""


@pytest.fixture
def fake_groonga(tmp_path) -> Path:
    path = tmp_path / "bin" / "groonga"
    path.parent.mkdir()
    path.write_text(FAKE_GROONGA.format(python=sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def config(tmp_path, fake_groonga) -> TesterConfig:
    return TesterConfig(
        groonga=str(fake_groonga),
        base_directory=tmp_path,
        temporary_directory=tmp_path / "tmp",
        diff="diff",
        diff_options=["-u"],
        first_timeout=5.0,
    )
