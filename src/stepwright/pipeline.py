"""Import pipeline: archive or PDF -> flattened text -> parsed workflow -> tasks."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from stepwright.archive import extract_from_archive
from stepwright.constants import PDF_EXTENSIONS
from stepwright.flatten import flatten
from stepwright.image import ImageCompressor
from stepwright.parser import parse_import
from stepwright.pdf import extract_from_pdf
from stepwright.projects import ProjectRepository
from stepwright.types import (
    AssetPayload,
    FlattenResult,
    ImageMap,
    PlaceholderMap,
    PreparedImport,
    WorkflowImportResult,
)

if TYPE_CHECKING:
    from stepwright.config import ImageConfig, StepwrightConfig
    from stepwright.models import Workflow
    from stepwright.store import Storage

_PDF_MAGIC = b"%PDF-"


def referenced_assets(
    placeholders: PlaceholderMap, assets: dict[str, AssetPayload]
) -> dict[str, AssetPayload]:
    """Assets that at least one placeholder token points at."""
    keys = dict.fromkeys(placeholders.values())
    return {key: assets[key] for key in keys if key in assets}


def build_image_map(
    placeholders: PlaceholderMap, assets: dict[str, AssetPayload]
) -> ImageMap:
    """Map each placeholder token to its asset's data URL."""
    return {
        token: assets[key].data_url for token, key in placeholders.items() if key in assets
    }


async def _finish(
    flat: FlattenResult,
    assets: dict[str, AssetPayload],
    image_config: ImageConfig | None,
    warnings: list[str],
) -> PreparedImport:
    # Only images that made it into the text are stored, so only those are compressed
    compressor = ImageCompressor(image_config)
    compressed, compress_warnings = await compressor.compress_all(
        referenced_assets(flat.placeholders, assets)
    )
    return PreparedImport(
        text=flat.text,
        placeholders=flat.placeholders,
        image_map=build_image_map(flat.placeholders, compressed),
        warnings=[*warnings, *compress_warnings],
    )


async def prepare_archive(
    data: bytes | Path | str, config: StepwrightConfig | None = None
) -> PreparedImport:
    """Extract, flatten and compress a zip archive.

    Raises:
        ArchiveError: If the archive is unreadable.
        NoDocumentFoundError: If it holds no documents.
    """
    extraction = extract_from_archive(data)
    flat = flatten(extraction.document_text, extraction.assets)
    warnings = [f"Skipped unreadable image {key}" for key in extraction.skipped]
    return await _finish(flat, extraction.assets, config.image if config else None, warnings)


async def prepare_pdf(
    data: bytes | Path | str, config: StepwrightConfig | None = None
) -> PreparedImport:
    """Extract and compress a PDF.

    Raises:
        PdfExtractionError: If the PDF is unreadable.
    """
    flat, assets = extract_from_pdf(data)
    return await _finish(flat, assets, config.image if config else None, [])


def import_text(prepared: PreparedImport, text: str) -> WorkflowImportResult:
    """Parse import YAML against the images of a prepared import."""
    return parse_import(text, prepared.image_map)


def is_pdf(source: bytes | Path | str) -> bool:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).startswith(_PDF_MAGIC)
    return Path(source).suffix.lower() in PDF_EXTENSIONS


class ImportPipeline:
    """Import stages bound to one configuration and one store."""

    def __init__(self, config: StepwrightConfig, storage: Storage) -> None:
        self.config = config
        self.storage = storage
        self.projects = ProjectRepository(storage.projects)

    async def prepare(self, source: bytes | Path | str) -> PreparedImport:
        """Prepare a zip archive or PDF, picked by magic bytes or suffix."""
        if is_pdf(source):
            return await prepare_pdf(source, self.config)
        return await prepare_archive(source, self.config)

    async def generate(self, prepared: PreparedImport) -> str:
        """Have the configured LLM write import YAML for the prepared text."""
        from stepwright.llm import generate_workflow_text

        return await generate_workflow_text(prepared.text, self.config.llm)

    def parse(self, prepared: PreparedImport, text: str) -> WorkflowImportResult:
        return import_text(prepared, text)

    def commit(
        self,
        result: WorkflowImportResult,
        project_id: str,
        images: ImageMap | None = None,
    ) -> Workflow | None:
        """Store the parsed workflow unless the result carries errors.

        Returns:
            The created workflow, or None when nothing was stored.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            StorageQuotaError: If the projects record would exceed its limit.
        """
        if result.errors:
            logger.warning(
                f"Not importing '{result.workflow.title or '<untitled>'}': "
                f"{len(result.errors)} error(s)"
            )
            return None
        return self.projects.import_workflow(project_id, result.workflow, images)

    async def run(
        self,
        source: bytes | Path | str,
        definition: str,
        project_id: str,
        dry_run: bool = False,
    ) -> tuple[PreparedImport, WorkflowImportResult, Workflow | None]:
        """Prepare ``source``, parse ``definition`` against it and commit."""
        prepared = await self.prepare(source)
        result = self.parse(prepared, definition)
        workflow = None
        if not dry_run:
            workflow = self.commit(result, project_id, prepared.image_map)
        return prepared, result, workflow
