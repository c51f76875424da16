import logging
import os
import zipfile
from typing import Dict

from utils.upload_store import UploadStore, is_image_name

logger = logging.getLogger(__name__)


async def build_zip_index(path: str, store: UploadStore) -> Dict[str, str]:
    """
    Store every image entry of a ZIP archive and map its basename to the stored reference.

    Directory entries and non-image entries are skipped. A malformed archive yields
    an empty index; the import then resolves gallery tokens without it.
    """
    index: Dict[str, str] = {}
    try:
        with zipfile.ZipFile(path) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                basename = os.path.basename(info.filename)
                if not basename or not is_image_name(basename):
                    continue
                data = zf.read(info)
                ext = os.path.splitext(basename)[1].lower()
                index[basename] = await store.save_bytes(data, ext)
    except zipfile.BadZipFile as e:
        logger.warning(f"Ignoring malformed image archive: {e}")
        return {}

    logger.info(f"Extracted {len(index)} images from archive")
    return index
