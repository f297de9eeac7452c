"""
Unit tests for the command line interface.

Test coverage:
- convert: output files, stdout, review bucket, exit status
- reapply: patching converted presets in place
"""

import json

import pytest
from milkdrop_glsl import cli
from milkdrop_glsl.pipeline import ShaderConverter
from milkdrop_glsl.validation.diagnostics import Diagnostic


@pytest.fixture
def shader_file(tmp_path):
    """Fixture for a dialect shader on disk."""
    path = tmp_path / 'x.hlsl'
    path.write_text("shader_body\n{\nret = lerp(a, b, 0.5);\n}\n", encoding='utf-8')
    return path


class SyntaxErrorValidator:
    """Reports an error no handler recognizes."""

    def validate(self, candidate):
        return [Diagnostic(2, 'x', 'syntax error')]


# ============================================================================
# convert
# ============================================================================

def test_convert_to_output_dir(shader_file, tmp_path):
    """Test writing a converted shader next to other outputs."""
    out = tmp_path / 'out'
    status = cli.main(['-q', 'convert', str(shader_file), '--no-validate', '--output-dir', str(out)])
    assert status == cli.EXIT_OK
    assert 'mix(a, b, 0.5)' in (out / 'x.glsl').read_text(encoding='utf-8')


def test_convert_removes_stale_broken_copy(shader_file, tmp_path):
    """Test that a clean result replaces an earlier broken one."""
    out = tmp_path / 'out'
    out.mkdir()
    (out / '_broken_x.glsl').write_text('old', encoding='utf-8')
    cli.main(['-q', 'convert', str(shader_file), '--no-validate', '--output-dir', str(out)])
    assert (out / 'x.glsl').exists()
    assert not (out / '_broken_x.glsl').exists()


def test_convert_to_stdout(shader_file, capsys):
    """Test printing the converted shader."""
    status = cli.main(['-q', 'convert', str(shader_file), '--no-validate'])
    assert status == cli.EXIT_OK
    assert 'mix(a, b, 0.5)' in capsys.readouterr().out


def test_convert_missing_file(tmp_path):
    """Test that unreadable inputs set exit status 1."""
    status = cli.main(['-q', 'convert', str(tmp_path / 'missing.hlsl'), '--no-validate'])
    assert status == cli.EXIT_READ_ERROR


def test_convert_unfixed(shader_file, tmp_path, monkeypatch):
    """Test that unfixed shaders go to the review bucket with exit status 2."""
    monkeypatch.setattr(
        cli, 'ShaderConverter',
        lambda config: ShaderConverter(config, validator=SyntaxErrorValidator()),
    )
    out = tmp_path / 'out'
    status = cli.main(['-q', 'convert', str(shader_file), '--output-dir', str(out)])
    assert status == cli.EXIT_UNFIXED
    assert (out / '_broken_x.glsl').exists()
    assert not (out / 'x.glsl').exists()


@pytest.mark.parametrize("option", ['--max-iterations=-1', '--timeout=0'])
def test_convert_rejects_bad_settings(shader_file, option, capsys):
    """Test that invalid settings are reported as usage errors."""
    with pytest.raises(SystemExit) as exc:
        cli.main(['-q', 'convert', str(shader_file), option])
    assert exc.value.code == 2
    assert 'error:' in capsys.readouterr().err


def test_warp_slot_option(shader_file, capsys):
    """Test that --slot warp adds the writable uv copy."""
    cli.main(['-q', 'convert', str(shader_file), '--no-validate', '--slot', 'warp'])
    assert 'vec2 _uv = uv;' in capsys.readouterr().out


# ============================================================================
# reapply
# ============================================================================

def test_reapply_patches_presets(tmp_path):
    """Test stripping uniforms from presets but not from the index."""
    preset = {'name': 'a', 'warp': 'uniform float time;\nret = vec3(time);', 'comp': ''}
    (tmp_path / 'a.json').write_text(json.dumps(preset), encoding='utf-8')
    index = '["a.json", "uniform float time;"]'
    (tmp_path / 'index.json').write_text(index, encoding='utf-8')

    status = cli.main(['-q', 'reapply', str(tmp_path)])
    assert status == cli.EXIT_OK
    patched = json.loads((tmp_path / 'a.json').read_text(encoding='utf-8'))
    assert patched == {'name': 'a', 'warp': 'ret = vec3(time);', 'comp': ''}
    assert (tmp_path / 'index.json').read_text(encoding='utf-8') == index


def test_reapply_leaves_clean_presets(tmp_path):
    """Test that presets without redeclarations are not rewritten."""
    text = '{"warp": "ret = vec3(time);"}'
    (tmp_path / 'a.json').write_text(text, encoding='utf-8')
    assert cli.main(['-q', 'reapply', str(tmp_path)]) == cli.EXIT_OK
    assert (tmp_path / 'a.json').read_text(encoding='utf-8') == text


def test_reapply_invalid_json(tmp_path):
    """Test that unparsable presets set exit status 1."""
    (tmp_path / 'b.json').write_text('{not json', encoding='utf-8')
    assert cli.main(['-q', 'reapply', str(tmp_path)]) == cli.EXIT_READ_ERROR
