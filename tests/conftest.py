import json

import pytest
from pyfakefs.fake_filesystem_unittest import Patcher

from templatize.engine.rules import default_rules


@pytest.fixture
def fs():
    with Patcher() as patcher:
        yield patcher.fs


@pytest.fixture
def rule_project(fs):
    """A fake project directory holding the default .templatize.json."""
    fs.create_file("/project/.templatize.json", contents=json.dumps(default_rules()))
    return "/project"
