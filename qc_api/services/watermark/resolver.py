"""
Watermark Asset Resolver - locates the `watermarks/` directory and loads the
three corner assets from it.

Deployments start the process from different working directories (repo root,
a subdirectory, a serverless bundle), so the directory is searched across an
ordered list of base paths. Resolution happens once per process; the result is
read-only and shared by every request.
"""
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from qc_api.utils.imaging import image_size

WATERMARKS_DIRNAME = "watermarks"


class WatermarkSlot(str, Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_RIGHT = "bottom_right"

    @property
    def filename(self) -> str:
        return _SLOT_FILES[self]


_SLOT_FILES = {
    WatermarkSlot.TOP_LEFT: "image1.png",
    WatermarkSlot.TOP_RIGHT: "image2.png",
    WatermarkSlot.BOTTOM_RIGHT: "image3.png",
}

# Compositing order
SLOT_ORDER = (WatermarkSlot.TOP_LEFT, WatermarkSlot.TOP_RIGHT, WatermarkSlot.BOTTOM_RIGHT)


@dataclass(frozen=True)
class WatermarkAsset:
    slot: WatermarkSlot
    data: bytes
    width: int
    height: int


WatermarkAssets = Dict[WatermarkSlot, WatermarkAsset]


def default_candidate_paths(
    override: Optional[str] = None,
    fixed_root: Optional[str] = None,
) -> List[Path]:
    """
    Ordered base directories probed for `watermarks/`:
    explicit override, cwd, cwd parent, platform root, package dir, its parent.
    """
    package_dir = Path(__file__).resolve().parents[2]
    cwd = Path(os.getcwd())

    candidates: List[Path] = []
    if override:
        candidates.append(Path(override).expanduser())
    candidates += [cwd, cwd.parent]
    if fixed_root:
        candidates.append(Path(fixed_root))
    candidates += [package_dir, package_dir.parent]
    return candidates


def resolve_watermark_directory(candidate_base_paths: Iterable[Path]) -> Optional[Path]:
    """Return the first `<base>/watermarks` directory that exists, else None."""
    candidates = list(candidate_base_paths)
    for base in candidates:
        path = Path(base) / WATERMARKS_DIRNAME
        if path.is_dir():
            logger.info(f"[Watermark] Found watermarks directory at: {path}")
            return path
    logger.warning(f"[Watermark] Watermarks directory not found. Searched: {[str(p) for p in candidates]}")
    return None


def resolve_asset(directory: Path, slot: WatermarkSlot) -> Optional[bytes]:
    """Read the file bound to `slot`; None when it is absent or unreadable."""
    path = Path(directory) / slot.filename
    try:
        return path.read_bytes()
    except FileNotFoundError:
        logger.warning(f"[Watermark] {slot.filename} not found at: {path}")
        return None
    except OSError as e:
        logger.warning(f"[Watermark] Cannot read {path}: {e}")
        return None


class WatermarkAssetResolver:
    """
    Resolves and caches the corner assets for the process lifetime.

    The candidate list is fixed at construction; `load_assets()` hits the
    filesystem only on first call (or after `refresh()`).
    """

    def __init__(self, candidate_base_paths: Iterable[Path]):
        self.candidate_base_paths = [Path(p) for p in candidate_base_paths]
        self._resolved = False
        self._directory: Optional[Path] = None
        self._assets: WatermarkAssets = {}

    @classmethod
    def from_settings(cls, settings) -> "WatermarkAssetResolver":
        return cls(default_candidate_paths(settings.WATERMARK_DIR, settings.WATERMARK_FIXED_ROOT))

    @property
    def directory(self) -> Optional[Path]:
        self._ensure_resolved()
        return self._directory

    def load_assets(self) -> WatermarkAssets:
        """Assets keyed by slot; slots whose file is missing are absent."""
        self._ensure_resolved()
        return self._assets

    def refresh(self) -> None:
        self._resolved = False
        self._directory = None
        self._assets = {}

    def _ensure_resolved(self) -> None:
        if self._resolved:
            return
        self._directory = resolve_watermark_directory(self.candidate_base_paths)
        assets: WatermarkAssets = {}
        if self._directory is not None:
            for slot in SLOT_ORDER:
                asset = self._load(self._directory, slot)
                if asset is not None:
                    assets[slot] = asset
            logger.info(f"[Watermark] Loaded {len(assets)}/{len(SLOT_ORDER)} watermark assets")
        self._assets = assets
        self._resolved = True

    @staticmethod
    def _load(directory: Path, slot: WatermarkSlot) -> Optional[WatermarkAsset]:
        data = resolve_asset(directory, slot)
        if data is None:
            return None
        try:
            width, height = image_size(data)
        except (OSError, ValueError) as e:
            logger.warning(f"[Watermark] {slot.filename} is not a readable image, skipping: {e}")
            return None
        return WatermarkAsset(slot=slot, data=data, width=width, height=height)
