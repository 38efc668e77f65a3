from reportmanager.config import Settings
from reportmanager.storage.base import ExportStorage
from reportmanager.storage.local import LocalStorage
from reportmanager.storage.volume import VolumeStorage


def build_storage(settings: Settings) -> ExportStorage:
    """Volume storage when a volume URL is configured, local filesystem otherwise."""
    if settings.export_volume_url:
        return VolumeStorage(
            base_url=settings.export_volume_url,
            sub_path=settings.export_volume_sub_path,
            token=settings.export_volume_token,
        )
    return LocalStorage(settings.export_path)
