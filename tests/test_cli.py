"""Tests for contact_qr.cli."""

import pytest
from PIL import Image

from conftest import bomb_png, image_bytes
from contact_qr.cli import create_parser, main


@pytest.fixture
def out(tmp_path):
    return tmp_path / "jane.png"


def jane_args(out):
    return ["--first-name", "Jane", "--last-name", "Doe", "--email", "jane@example.com",
            "--output", str(out)]


class TestParser:
    def test_defaults(self):
        args = create_parser().parse_args([])
        assert args.level == "M"
        assert args.size == 320
        assert args.photo_max_dim == 512
        assert args.photo_quality == 0.8

    def test_level_case_insensitive(self):
        assert create_parser().parse_args(["--level", "q"]).level == "Q"


class TestMain:
    def test_writes_png_and_vcf(self, out, tmp_path):
        vcf = tmp_path / "jane.vcf"
        assert main(jane_args(out) + ["--vcf", str(vcf)]) == 0

        with Image.open(out) as img:
            assert img.size == (320, 320)
        text = vcf.read_bytes().decode("utf-8")
        assert "FN:Jane Doe\r\n" in text
        assert "EMAIL;TYPE=INTERNET:jane@example.com" in text

    def test_reports_vcard_mime_type(self, out, tmp_path, capsys):
        assert main(jane_args(out) + ["--vcf", str(tmp_path / "jane.vcf")]) == 0
        assert "text/vcard;charset=utf-8" in capsys.readouterr().out

    def test_show_vcard(self, out, capsys):
        assert main(jane_args(out) + ["--show-vcard"]) == 0
        assert "N:Doe;Jane;;;" in capsys.readouterr().out

    def test_validation_blocks_export(self, out, capsys):
        assert main(["--email", "not-an-email", "--output", str(out)]) == 1
        err = capsys.readouterr().err
        assert "Enter at least one of First, Last, or Display name" in err
        assert "Enter a valid email" in err
        assert not out.exists()

    def test_hosted_url(self, out, capsys):
        url = "https://example.com/jane.vcf"
        assert main(jane_args(out) + ["--hosted-url", url, "--show-vcard"]) == 0
        stdout = capsys.readouterr().out
        assert url in stdout
        assert "BEGIN:VCARD" not in stdout

    def test_photo_embedded(self, out, tmp_path):
        photo = tmp_path / "portrait.png"
        photo.write_bytes(image_bytes(size=(600, 400), color=(200, 180, 160)))
        vcf = tmp_path / "jane.vcf"
        assert main(jane_args(out) + ["--photo", str(photo), "--vcf", str(vcf)]) == 0
        assert "PHOTO;ENCODING=b;TYPE=JPEG:" in vcf.read_text(encoding="utf-8")

    def test_photo_left_out_of_vcf(self, out, tmp_path):
        photo = tmp_path / "portrait.png"
        photo.write_bytes(image_bytes(size=(100, 100)))
        vcf = tmp_path / "jane.vcf"
        args = jane_args(out) + ["--photo", str(photo), "--vcf", str(vcf), "--no-vcf-photo"]
        assert main(args) == 0
        assert "PHOTO" not in vcf.read_text(encoding="utf-8")

    def test_missing_photo(self, out, tmp_path, capsys):
        assert main(jane_args(out) + ["--photo", str(tmp_path / "missing.jpg")]) == 1
        assert "Image not found" in capsys.readouterr().err

    def test_payload_too_large(self, out, capsys):
        assert main(jane_args(out) + ["--note", "x" * 3000]) == 1
        assert "too large" in capsys.readouterr().err
        assert not out.exists()

    def test_no_auto_downgrade(self, out, capsys):
        args = jane_args(out) + ["--note", "x" * 1400, "--level", "H"]
        assert main(args + ["--no-auto-downgrade"]) == 1
        assert main(args + ["--overwrite"]) == 0
        assert "Error correction lowered to Q" in capsys.readouterr().out

    def test_declined_overwrite(self, out, monkeypatch):
        out.write_bytes(b"keep me")
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert main(jane_args(out)) == 0
        assert out.read_bytes() == b"keep me"

    def test_oversized_photo(self, out, tmp_path, capsys):
        photo = tmp_path / "huge.png"
        photo.write_bytes(bomb_png())
        assert main(jane_args(out) + ["--photo", str(photo)]) == 1
        assert "Could not open image" in capsys.readouterr().err
        assert not out.exists()

    def test_payload_too_large_removes_previous_qr(self, out):
        out.write_bytes(b"previous QR")
        assert main(jane_args(out) + ["--note", "x" * 3000, "--overwrite"]) == 1
        assert not out.exists()

    def test_payload_too_large_keeps_file_without_overwrite(self, out):
        out.write_bytes(b"previous QR")
        assert main(jane_args(out) + ["--note", "x" * 3000]) == 1
        assert out.read_bytes() == b"previous QR"

    def test_render_failure_removes_previous_qr(self, out, monkeypatch, capsys):
        from contact_qr import qr_generator

        def failing_render(*args, **kwargs):
            raise qr_generator.RenderError("renderer rejected payload")

        monkeypatch.setattr(qr_generator, "render_qr", failing_render)
        out.write_bytes(b"previous QR")
        assert main(jane_args(out) + ["--overwrite"]) == 1
        assert "Failed to render QR" in capsys.readouterr().err
        assert not out.exists()
