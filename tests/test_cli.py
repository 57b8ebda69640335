"""Tests for the command-line interface."""
import json

import pytest

from harpipe.cli import build_parser, load_messages, main, options_from_args

from cdp_events import frame_navigated, page_load


def write_jsonl(path, messages):
    path.write_text('\n'.join(json.dumps(message) for message in messages) + '\n')


def test_load_messages_from_json_array(tmp_path):
    messages = [frame_navigated(), *page_load()]
    source = tmp_path / 'events.json'
    source.write_text(json.dumps(messages))
    assert load_messages(source) == messages


def test_load_messages_from_json_lines_skips_blank_lines(tmp_path):
    messages = [frame_navigated(), *page_load()]
    source = tmp_path / 'events.jsonl'
    source.write_text('\n' + '\n\n'.join(json.dumps(message) for message in messages) + '\n')
    assert load_messages(source) == messages


def test_load_messages_reports_bad_line(tmp_path):
    source = tmp_path / 'events.jsonl'
    source.write_text('{"method": "Page.loadEventFired", "params": {}}\n{not json}\n')
    with pytest.raises(ValueError, match=':2 is not valid JSON'):
        load_messages(source)


def test_load_messages_rejects_non_objects(tmp_path):
    source = tmp_path / 'events.json'
    source.write_text('[1, 2, 3]')
    with pytest.raises(ValueError):
        load_messages(source)


def test_options_from_args():
    args = build_parser().parse_args(['convert', 'in.jsonl', '--include-disk-cache', '--name', 'ci', '--comment', 'x'])
    options = options_from_args(args)
    assert options.include_resources_from_disk_cache is True
    assert options.include_custom_properties is False
    assert options.name == 'ci'
    assert options.comment == 'x'


def test_capture_requires_port():
    with pytest.raises(SystemExit):
        build_parser().parse_args(['capture'])


def test_convert_writes_har_file(tmp_path):
    source = tmp_path / 'events.jsonl'
    write_jsonl(source, [frame_navigated(), *page_load()])
    output = tmp_path / 'out' / 'page.har'

    assert main(['convert', str(source), '-o', str(output), '--name', 'ci']) == 0

    har = json.loads(output.read_text())
    assert har['log']['version'] == '1.2'
    assert har['log']['creator']['name'] == 'ci'
    assert [page['id'] for page in har['log']['pages']] == ['page_1']
    assert len(har['log']['entries']) == 1


def test_convert_prints_to_stdout(tmp_path, capsys):
    source = tmp_path / 'events.jsonl'
    write_jsonl(source, [frame_navigated(), *page_load()])

    assert main(['convert', str(source)]) == 0

    har = json.loads(capsys.readouterr().out)
    assert har['log']['entries'][0]['request']['url'] == 'https://example.com/'


def test_convert_missing_file_returns_error(tmp_path, capsys):
    assert main(['convert', str(tmp_path / 'missing.jsonl')]) == 1
    assert '[harpipe]' in capsys.readouterr().err


def test_convert_invalid_file_returns_error(tmp_path, capsys):
    source = tmp_path / 'events.jsonl'
    source.write_text('garbage\n')
    assert main(['convert', str(source)]) == 1
    assert 'is not valid JSON' in capsys.readouterr().err
