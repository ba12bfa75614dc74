import json
import os

import pandas as pd
import pytest

from convo_export import (
    build_convos,
    compile_workspace,
    format_log,
    format_step_line,
    safe_filename,
    write_convo_json,
    write_convo_txt,
    write_convos,
)
from dialog_graph import DialogGraph
from dialog_simulator import DialogSimulator
from factories import menu_workspace


@pytest.fixture
def menu_paths():
    graph = DialogGraph.from_workspace(menu_workspace())
    paths, _ = DialogSimulator(graph).simulate_all_paths()
    return paths


class TestBuildConvos:
    def test_names_are_padded_sequence_numbers(self, menu_paths):
        convos = build_convos(menu_paths, 'Demo')
        assert [c['header']['name'] for c in convos] == ['Demo000', 'Demo001']

    def test_description_is_the_path_log(self, menu_paths):
        convos = build_convos(menu_paths, 'Demo')
        description = convos[0]['header']['description']
        assert description.startswith('[\n{"processedNode":')
        assert json.loads(description) == list(menu_paths[0].log)

    def test_conversation_is_plain_data(self, menu_paths):
        convo = build_convos(menu_paths, 'Demo')[1]
        assert convo['conversation'] == menu_paths[1].conversation_as_dicts()

    def test_empty_log(self):
        assert format_log(()) == '[\n]'


class TestWriters:
    def test_safe_filename(self):
        assert safe_filename('My bot: v2/test') == 'My_bot_v2_test'
        assert safe_filename('???') == 'convo'

    def test_json_writer(self, menu_paths, output_dir):
        convo = build_convos(menu_paths, 'Demo')[0]
        filename = write_convo_json(convo, output_dir)
        assert filename == os.path.join(output_dir, 'Demo000.convo.json')
        with open(filename, encoding='utf-8') as f:
            assert json.load(f) == convo

    def test_step_lines(self):
        assert format_step_line({'sender': 'bot', 'messageText': 'Hi\nthere'}) == 'Bot: Hi / there'
        assert format_step_line({
            'sender': 'me', 'messageText': '', 'userInputs': [{'name': 'BUTTON', 'args': ['1A']}],
        }) == 'User: [button] 1A'
        assert format_step_line({
            'sender': 'bot', 'messageText': 'Pick', 'asserters': [{'name': 'BUTTONS', 'args': ['A', 'B']}],
        }) == 'Bot: Pick || [buttons] A, B'

    def test_txt_writer(self, menu_paths, output_dir):
        convo = build_convos(menu_paths, 'Demo')[0]
        filename = write_convo_txt(convo, output_dir)
        with open(filename, encoding='utf-8') as f:
            lines = f.read().splitlines()
        assert lines == [
            'Demo000',
            '',
            'Bot: Hi || [buttons] Pizza, Pasta',
            'User: [button] 1A',
            'Bot: Pizza it is',
        ]

    def test_failed_write_does_not_stop_the_others(self, menu_paths, output_dir):
        convos = build_convos(menu_paths, 'Demo')

        def flaky_writer(convo, directory):
            if convo['header']['name'] == 'Demo000':
                raise OSError('disk full')
            return write_convo_json(convo, directory)

        written, failed = write_convos(convos, output_dir, flaky_writer, show_progress=False)
        assert written == [os.path.join(output_dir, 'Demo001.convo.json')]
        assert failed == [('Demo000', 'disk full')]


class TestCompileWorkspace:
    def test_writes_every_path(self, menu_workspace_file, output_dir):
        summary = compile_workspace(menu_workspace_file, output_dir, show_progress=False)
        assert summary['conversations'] == 2
        assert summary['processed'] == 3
        assert summary['not_processed'] == []
        assert summary['failed'] == []
        assert sorted(os.listdir(output_dir)) == ['Demo000.convo.json', 'Demo001.convo.json']

    def test_txt_format(self, menu_workspace_file, output_dir):
        compile_workspace(menu_workspace_file, output_dir, output_format='txt', show_progress=False)
        assert sorted(os.listdir(output_dir)) == ['Demo000.convo.txt', 'Demo001.convo.txt']

    def test_coverage_workbook(self, menu_workspace_file, output_dir, tmp_path):
        xlsx = str(tmp_path / 'coverage.xlsx')
        summary = compile_workspace(menu_workspace_file, output_dir, coverage_xlsx=xlsx, show_progress=False)
        assert summary['coverage_xlsx'] == xlsx
        sheets = pd.read_excel(xlsx, sheet_name=None)
        assert list(sheets) == ['Processed', 'Recursive', 'NotProcessed']
        assert list(sheets['Processed']['id']) == ['welcome', 'pizza', 'pasta']
        assert sheets['NotProcessed'].empty

    def test_unknown_format(self, menu_workspace_file, output_dir):
        with pytest.raises(ValueError):
            compile_workspace(menu_workspace_file, output_dir, output_format='yaml')
