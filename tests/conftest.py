import pytest

from factories import menu_workspace, write_json


@pytest.fixture
def menu_workspace_file(tmp_path):
    """A two-button workspace written to disk"""
    return write_json(tmp_path / 'menu.json', menu_workspace())


@pytest.fixture
def output_dir(tmp_path):
    return str(tmp_path / 'out')
