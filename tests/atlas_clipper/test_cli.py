"""Tests for the command-line interface."""

import numpy as np
import pytest
from PIL import Image

from atlas_clipper.__main__ import main
from fixtures.create_test_data import atlas_pixels, corrupt_png_bytes


@pytest.fixture
def atlas_path(tmp_path):
    path = tmp_path / "atlas.png"
    Image.fromarray(atlas_pixels(10, 8, 4)).save(path)
    return path


def test_no_arguments_prints_help(capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "usage:" in out
    assert "input atlas file" in out
    assert "Each -o value is a single string" in out


def test_missing_atlas(tmp_path, capsys):
    assert main(['-i', str(tmp_path / "nope.png"), '-o', 'clip 0 0 1 1']) == 1
    assert "[FAIL] Input atlas file" in capsys.readouterr().err


def test_undecodable_atlas(tmp_path, capsys):
    path = tmp_path / "atlas.png"
    path.write_bytes(b"garbage")

    assert main(['-i', str(path), '-o', 'clip 0 0 1 1']) == 2
    assert "as image" in capsys.readouterr().err
    assert not (tmp_path / "clip.png").exists()


def test_corrupt_png_atlas(tmp_path, capsys):
    path = tmp_path / "atlas.png"
    path.write_bytes(corrupt_png_bytes())

    assert main(['-i', str(path), '--output-dir', str(tmp_path), '-o', 'c 0 0 1 1']) == 2
    assert "as image" in capsys.readouterr().err
    assert not (tmp_path / "c.png").exists()


def test_generates_clips(atlas_path, tmp_path, capsys):
    out_a = tmp_path / "out" / "a"
    out_b = tmp_path / "out" / "b.png"

    code = main([
        '-i', str(atlas_path),
        '-o', f'{out_a} 0 0 4 4',
        '-o', f'{out_b} 2 3 5 2',
    ])

    assert code == 0
    stdout = capsys.readouterr().out
    assert f"[ OK ] File '{out_a}.png' generated" in stdout
    assert f"[ OK ] File '{out_b}' generated" in stdout
    with Image.open(out_b) as img:
        assert np.array_equal(np.array(img), atlas_pixels(10, 8, 4)[3:5, 2:7])


def test_out_of_bounds_clip_reported(atlas_path, tmp_path, capsys):
    code = main([
        '-i', str(atlas_path),
        '--output-dir', str(tmp_path),
        '-o', 'valid 0 0 2 2',
        '-o', 'invalid 9 0 2 2',
    ])

    assert code == 3
    captured = capsys.readouterr()
    assert "valid.png' generated" in captured.out
    assert "[FAIL]" in captured.err and "invalid" in captured.err
    assert (tmp_path / "valid.png").exists()
    assert not (tmp_path / "invalid.png").exists()


def test_directory_failure_exit_code(atlas_path, tmp_path, capsys):
    (tmp_path / "blocker").write_text("x")

    code = main([
        '-i', str(atlas_path),
        '--output-dir', str(tmp_path),
        '-o', 'blocker/clip 0 0 2 2',
        '-o', 'after 0 0 2 2',
    ])

    assert code == 4
    assert "Can't create directory" in capsys.readouterr().err
    assert not (tmp_path / "after.png").exists()


def test_malformed_descriptor_is_usage_error(atlas_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(['-i', str(atlas_path), '-o', 'clip 0 0 two 2'])
    assert excinfo.value.code == 2
    assert "must be integers" in capsys.readouterr().err


def test_flip_and_opencv_codec(atlas_path, tmp_path):
    code = main([
        '-i', str(atlas_path),
        '--output-dir', str(tmp_path),
        '--codec', 'opencv',
        '--flip',
        '-o', 'flipped 1 1 3 4',
    ])

    assert code == 0
    with Image.open(tmp_path / "flipped.png") as img:
        assert np.array_equal(np.array(img), atlas_pixels(10, 8, 4)[1:5, 1:4][::-1])


def test_arguments_from_file(atlas_path, tmp_path):
    args_file = tmp_path / "args.txt"
    args_file.write_text("\n".join([
        "-i", str(atlas_path),
        "--output-dir", str(tmp_path),
        "-o", "from_file 0 0 3 3",
    ]))

    assert main([f"@{args_file}"]) == 0
    assert (tmp_path / "from_file.png").exists()
