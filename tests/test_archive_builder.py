"""Tests for archive naming and packaging."""

import base64
import io
import zipfile

import pytest

from transform_pack.core import ArchiveBuilder, archive_entries
from transform_pack.models import GeneratedImage, ImageCategory
from transform_pack.utils.errors import OutputError


def image(category, label, mime_type="image/png", data=None):
    return GeneratedImage(
        data=data if data is not None else base64.b64encode(label.encode()).decode(),
        mime_type=mime_type,
        source_prompt=label,
        category=category,
    )


def read_zip(content: bytes) -> dict:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


def test_full_pack_has_contiguous_indices_per_category():
    results = [
        image(category, f"{category.value}-{i}")
        for i in range(5)
        for category in ImageCategory
    ]
    
    files = read_zip(ArchiveBuilder().build(results))
    
    assert len(files) == 15
    for category in ImageCategory:
        assert sorted(n for n in files if n.startswith(f"{category.slug}/")) == sorted(
            f"{category.slug}/{category.slug}-{i}.png" for i in range(1, 6)
        )


def test_index_follows_aggregate_position():
    results = [
        image(ImageCategory.MUSCULAR, "m-a"),
        image(ImageCategory.UNDERWEIGHT, "u-a"),
        image(ImageCategory.MUSCULAR, "m-b"),
    ]
    
    entries = archive_entries(results)
    
    assert [e.path for e in entries] == [
        "Muscular/Muscular-1.png",
        "Underweight/Underweight-1.png",
        "Muscular/Muscular-2.png",
    ]
    assert entries[2].data == b"m-b"


def test_payload_is_decoded_to_raw_bytes():
    raw = b"\x89PNG\r\n\x1a\n\x00\x01binary"
    result = image(ImageCategory.OVERWEIGHT, "x", data=base64.b64encode(raw).decode())
    
    files = read_zip(ArchiveBuilder().build([result]))
    
    assert files["Overweight/Overweight-1.png"] == raw


def test_data_url_payload_is_accepted():
    result = image(
        ImageCategory.OVERWEIGHT,
        "x",
        data="data:image/png;base64," + base64.b64encode(b"abc").decode(),
    )
    
    assert archive_entries([result])[0].data == b"abc"


@pytest.mark.parametrize("mime_type,extension", [
    ("image/png", "png"),
    ("image/jpeg", "jpg"),
    ("image/webp", "webp"),
    ("", "png"),
])
def test_extension_comes_from_mime_type(mime_type, extension):
    entries = archive_entries([image(ImageCategory.MUSCULAR, "x", mime_type=mime_type)])
    
    assert entries[0].path == f"Muscular/Muscular-1.{extension}"


def test_undecodable_payload_fails_whole_build():
    results = [
        image(ImageCategory.MUSCULAR, "ok"),
        image(ImageCategory.MUSCULAR, "bad", data="not base64 !!!"),
    ]
    
    with pytest.raises(OutputError):
        ArchiveBuilder().build(results)


def test_empty_results_build_empty_archive():
    assert read_zip(ArchiveBuilder().build([])) == {}


def test_category_slug_replaces_whitespace():
    assert ImageCategory.MUSCULAR.slug == "Muscular"
