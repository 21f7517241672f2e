import pytest

from meeting_wizard.services.audio import (
    UnsupportedAudioFormatError,
    extension_for,
    fix_dat_webm,
    suggest_conversion,
    validate_format,
)


@pytest.mark.parametrize(
    "mime, name, expected",
    [
        ("audio/webm;codecs=opus", "", "webm"),
        ("audio/x-wav", "a.bin", "wav"),
        ("video/mp4", "", "mp4"),
        ("application/octet-stream", "möte.M4A", "m4a"),
        ("", "", "webm"),
    ],
)
def test_extension_for(mime, name, expected):
    assert extension_for(mime, name) == expected


def test_validate_format():
    assert validate_format("/x/audio.MP3") == "mp3"

    with pytest.raises(UnsupportedAudioFormatError) as excinfo:
        validate_format("/x/audio.mov")

    assert excinfo.value.suggestion == "mp4"
    assert "Ogiltigt filformat: MOV" in str(excinfo.value)
    assert "Försök konvertera till MP4" in str(excinfo.value)


def test_unknown_format_has_no_suggestion():
    assert suggest_conversion("xyz") is None
    with pytest.raises(UnsupportedAudioFormatError) as excinfo:
        validate_format("ljud.xyz")
    assert "konvertera" not in str(excinfo.value)


def test_fix_dat_webm_renames_webm_payload(tmp_path):
    dat = tmp_path / "blob.dat"
    dat.write_bytes(b"\x1a\x45\xdf\xa3rest")

    fixed = fix_dat_webm(str(dat))

    assert fixed == str(tmp_path / "blob.webm")
    assert not dat.exists()


def test_fix_dat_webm_leaves_other_files(tmp_path):
    dat = tmp_path / "blob.dat"
    dat.write_bytes(b"RIFFdata")
    wav = tmp_path / "blob.wav"
    wav.write_bytes(b"\x1a\x45\xdf\xa3")

    assert fix_dat_webm(str(dat)) is None
    assert fix_dat_webm(str(wav)) is None
    assert dat.exists()
