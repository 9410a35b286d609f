import pytest
from PIL import Image

from converter.conversion import service as service_module
from converter.conversion.models import ConversionRequest, TargetFormat, WatermarkMode
from converter.conversion.service import ConversionService, format_size, saved_percent
from converter.errors import DecodeError, ValidationError


@pytest.fixture
def service(store):
    return ConversionService(store.directory)


def test_format_size():
    assert format_size(512) == "0.50 KB"
    assert format_size(1024 * 1024 - 1) == "1024.00 KB"
    assert format_size(1024 * 1024) == "1.00 MB"
    assert format_size(5 * 1024 * 1024 + 512 * 1024) == "5.50 MB"


def test_saved_percent_is_signed():
    assert saved_percent(1000, 800) == "20.00"
    assert saved_percent(3, 1) == "66.67"
    assert saved_percent(1000, 1500) == "-50.00"
    assert saved_percent(100, 100) == "0.00"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("webp", TargetFormat.WEBP),
        ("PNG", TargetFormat.PNG),
        ("jpg", TargetFormat.JPEG),
        ("JPEG", TargetFormat.JPEG),
        ("gif", TargetFormat.PASSTHROUGH),
        ("", TargetFormat.PASSTHROUGH),
    ],
)
def test_target_format_matching(value, expected):
    assert TargetFormat.from_request(value) == expected


def test_converts_to_webp_and_removes_upload(service, store, make_upload):
    upload = make_upload("photo.png")
    result = service.convert(upload, ConversionRequest(convert_to="WEBP"))

    assert result.name == "photo.webp"
    assert result.original_size.endswith(" KB")
    float(result.saved_percent)
    out = store.directory / "photo.webp"
    with Image.open(out) as img:
        assert img.format == "WEBP"
        assert img.size == (64, 48)
    assert not upload.path.exists()


def test_same_format_round_trip(service, store, make_upload):
    upload = make_upload("same.png")
    result = service.convert(upload, ConversionRequest(convert_to="png"))
    out = store.directory / result.name
    assert out.stat().st_size > 0
    with Image.open(out) as img:
        assert img.format == "PNG"
        assert img.getpixel((0, 0)) == (200, 30, 30)


def test_jpg_alias_flattens_alpha(service, store, make_upload):
    upload = make_upload("alpha.png", mode="RGBA", color=(10, 20, 30, 128))
    result = service.convert(upload, ConversionRequest(convert_to="JPG"))
    assert result.name == "alpha.jpg"
    with Image.open(store.directory / "alpha.jpg") as img:
        assert img.format == "JPEG"
        assert img.mode == "RGB"


def test_unknown_format_keeps_source_codec(service, store, make_upload):
    upload = make_upload("keep.png")
    result = service.convert(upload, ConversionRequest(convert_to="tiff2"))
    assert result.name == "keep.tiff2"
    with Image.open(store.directory / "keep.tiff2") as img:
        assert img.format == "PNG"


def test_strict_formats_rejects_unknown(store, make_upload):
    upload = make_upload("keep.png")
    strict = ConversionService(store.directory, strict_formats=True)
    with pytest.raises(ValidationError):
        strict.convert(upload, ConversionRequest(convert_to="tiff2"))
    assert upload.path.exists()


def test_oversized_image_is_bounded(store, make_upload):
    upload = make_upload("wide.png", size=(200, 100))
    small = ConversionService(store.directory, max_dimension=50)
    small.convert(upload, ConversionRequest(convert_to="png"))
    with Image.open(store.directory / "wide.png") as img:
        assert img.size == (50, 25)


def test_watermark_applied_when_mode_and_text_set(service, store, make_upload):
    upload = make_upload("white.png", size=(300, 200), color=(255, 255, 255))
    request = ConversionRequest(
        convert_to="png",
        watermark_text="  TEST  ",
        watermark_modes={"white": WatermarkMode.DARK},
    )
    assert request.watermark_text == "TEST"
    service.convert(upload, request)
    with Image.open(store.directory / "white.png") as img:
        low = min(band[0] for band in img.getextrema())
    assert low < 255


@pytest.mark.parametrize(
    "text,modes",
    [
        ("", {"white": WatermarkMode.DARK}),
        ("TEST", {"white": WatermarkMode.NONE}),
        ("TEST", {}),
        ("   ", {"white": WatermarkMode.LIGHT}),
    ],
)
def test_no_overlay_without_mode_or_text(service, store, make_upload, monkeypatch, text, modes):
    def _fail(*args, **kwargs):
        raise AssertionError("overlay must not be composed")

    monkeypatch.setattr(service_module, "compose_watermark", _fail)
    upload = make_upload("white.png", size=(300, 200), color=(255, 255, 255))
    service.convert(upload, ConversionRequest(convert_to="png", watermark_text=text, watermark_modes=modes))
    with Image.open(store.directory / "white.png") as img:
        assert img.getextrema() == ((255, 255), (255, 255), (255, 255))


def test_corrupt_upload_raises_decode_error(service, store, bad_upload):
    with pytest.raises(DecodeError):
        service.convert(bad_upload, ConversionRequest(convert_to="webp"))
    assert not (store.directory / "broken.webp").exists()
    assert bad_upload.path.exists()


def test_cleanup_upload_tolerates_missing(service, upload_dir):
    service.cleanup_upload(upload_dir / "gone.png")


def test_known_extension_still_uses_source_codec(service, store, make_upload):
    upload = make_upload("anim.png")
    service.convert(upload, ConversionRequest(convert_to="gif"))
    with Image.open(store.directory / "anim.gif") as img:
        assert img.format == "PNG"


def test_original_size_comes_from_staged_upload(service, make_upload):
    upload = make_upload("sized.png")
    upload.size = 2048
    result = service.convert(upload, ConversionRequest(convert_to="png"))
    assert result.original_size == "2.00 KB"


def test_no_partial_files_left_in_output_dir(service, store, make_upload):
    service.convert(make_upload("clean.png"), ConversionRequest(convert_to="webp"))
    assert [p.name for p in store.directory.iterdir()] == ["clean.webp"]
