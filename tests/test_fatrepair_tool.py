from __future__ import annotations

from typing import TYPE_CHECKING

from dissect.fatrepair.tools import fatrepair
from conftest import (
    BACKUP_SECTOR,
    SECTOR_SIZE,
    make_boot_sector,
    make_dirent,
    make_image,
    write_dirents,
)

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


def test_fatrepair(fat32_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    output = tmp_path / "out.dd"

    assert fatrepair.main([str(fat32_file), str(output)]) == 0

    out = capsys.readouterr().out
    assert "Boot sector located." in out
    assert "Bytes per sector: 512" in out
    assert "Sectors per cluster: 1" in out
    assert "Number of reserved sectors: 8" in out
    assert "Number of FATs: 2" in out
    assert "Size of FATs (in sectors): 1" in out
    assert out.rstrip().endswith("All done.")
    assert output.read_bytes() == fat32_file.read_bytes()


def test_fatrepair_repairs(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    image = make_image(primary=make_boot_sector(BPB_Media=0))
    write_dirents(image, make_dirent(b"FILE0001TXT", attr=0x00, ntres=0x01), start=2)
    source = tmp_path / "in.dd"
    source.write_bytes(image)
    output = tmp_path / "out.dd"

    assert fatrepair.main([str(source), str(output), "-v"]) == 0

    out = capsys.readouterr().out
    assert "invalid BPB_Media" in out
    assert f"Backup boot sector located at offset {BACKUP_SECTOR * SECTOR_SIZE}" in out
    assert "FILE0001TXT located at offset" in out
    assert "This repair cannot be done automatically." in out
    assert "Repaired the directory entry's reserved byte" in out

    repaired = output.read_bytes()
    assert repaired[:SECTOR_SIZE] == make_boot_sector()
    assert source.read_bytes() == image


def test_fatrepair_unrecoverable(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    source = tmp_path / "in.dd"
    source.write_bytes(make_image(primary=bytearray(SECTOR_SIZE), backup=bytearray(SECTOR_SIZE)))
    output = tmp_path / "out.dd"

    assert fatrepair.main([str(source), str(output)]) == 1

    assert "corrupted beyond repair" in capsys.readouterr().out
    assert not output.exists()


def test_fatrepair_unterminated_directory(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    source = tmp_path / "in.dd"
    source.write_bytes(make_image()[: 10 * SECTOR_SIZE + 4 * 32])
    output = tmp_path / "out.dd"

    assert fatrepair.main([str(source), str(output)]) == 2

    assert "Root directory could not be scanned" in capsys.readouterr().out
    assert not output.exists()
