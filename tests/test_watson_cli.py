import os

import pytest

from factories import write_json
from watson_cli import build_parser, main


def run_cli(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParser:
    def test_intents_defaults(self):
        args = build_parser().parse_args(['intents', 'ws.json'])
        assert args.source == 'intents'
        assert args.buildconvos is True
        assert args.format == 'json'

    def test_logs_defaults(self):
        args = build_parser().parse_args(['logs', 'logs.json'])
        assert args.log_format == 'convo'
        assert args.convo_format == 'json'

    def test_no_buildconvos(self):
        assert build_parser().parse_args(['intents', 'ws.json', '--no-buildconvos']).buildconvos is False

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    def test_convos(self, menu_workspace_file, output_dir):
        assert run_cli(['convos', menu_workspace_file, '-o', output_dir, '--format', 'txt']) == 0
        assert sorted(os.listdir(output_dir)) == ['Demo000.convo.txt', 'Demo001.convo.txt']

    def test_failure_exits_non_zero(self, tmp_path, output_dir, capsys):
        json_file = write_json(tmp_path / 'bad.json', {'dialog_nodes': [{'dialog_node': 'a'}]})
        assert run_cli(['convos', json_file, '-o', output_dir]) == 1
        assert 'FAILED: no welcome node!' in capsys.readouterr().out

    def test_intents(self, tmp_path, output_dir):
        json_file = write_json(tmp_path / 'ws.json', {'intents': [{'intent': 'hi', 'examples': [{'text': 'hello'}]}]})
        assert run_cli(['intents', json_file, '-o', output_dir, '--no-buildconvos']) == 0
        assert os.listdir(output_dir) == ['UTT_INTENT_HI.utterances.txt']

    def test_batch(self, tmp_path, menu_workspace_file):
        output_dir = str(tmp_path / 'batch')
        assert run_cli(['batch', str(tmp_path), '-o', output_dir]) == 0
        assert os.path.isdir(os.path.join(output_dir, 'menu'))

    def test_logs_with_transcript_convos(self, tmp_path, output_dir):
        logs = [{
            'request': {'input': {'text': 'hello'}},
            'response': {'context': {'conversation_id': 'c1'}, 'output': {'text': ['Hi!']}},
            'request_timestamp': '2020-01-01T10:00:00Z',
            'response_timestamp': '2020-01-01T10:00:01Z',
        }]
        json_file = write_json(tmp_path / 'logs.json', logs)
        assert run_cli(['logs', json_file, '-o', output_dir, '--convo-format', 'txt']) == 0
        assert sorted(os.listdir(output_dir)) == ['c1.convo.txt', 'logs.xlsx']
