import json

import pytest

from nautical_chart_decoder import cli


@pytest.fixture
def chart_file(tmp_path, point_chart):
    path = tmp_path / 'US5TEST1.000'
    point_chart.dataset()
    path.write_bytes(point_chart.to_bytes())
    return path


def test_decode_and_summarise(chart_file, caplog):
    caplog.set_level('INFO')
    assert cli.main([str(chart_file)]) == 0
    assert "usage band Harbour" in caplog.text
    assert "features: 1" in caplog.text


def test_geojson_export(chart_file, tmp_path):
    out = tmp_path / 'chart.geojson'
    assert cli.main([str(chart_file), '--geojson', str(out)]) == 0
    data = json.loads(out.read_text(encoding='utf-8'))
    assert data['features'][0]['geometry']['type'] == 'Point'


def test_missing_file(tmp_path):
    assert cli.main([str(tmp_path / 'missing.000')]) == 1


def test_corrupt_file(tmp_path):
    path = tmp_path / 'broken.000'
    path.write_bytes(b'not an exchange file at all')
    assert cli.main([str(path)]) == 1


def test_sequence_check_flag(tmp_path, builder):
    builder.node(1, 1.0, 1.0)
    path = tmp_path / 'gap.000'
    path.write_bytes(builder.to_bytes(numbers=[1, 5]))
    assert cli.main([str(path)]) == 1
    assert cli.main([str(path), '--no-sequence-check']) == 0


def test_invalid_environment(monkeypatch, chart_file):
    monkeypatch.setenv('ENC_DECODER_ATTRIBUTE_ENCODING', 'not-a-codec')
    assert cli.main([str(chart_file)]) == 2
