"""Single export pipeline: floor-plan document in, GLB bytes out."""

import logging
from typing import Any, Optional, Union

from planexport.config import ExportConfig
from planexport.errors import EmptySceneError
from planexport.export.exporter import SceneExporter
from planexport.materials.catalog import TextureCatalog, select_catalog
from planexport.materials.fetcher import TextureFetcher
from planexport.materials.resolver import MaterialResolver
from planexport.model_gen.generator import GeneratorConfig, ModelGenerator
from planexport.planner.elements import FloorPlanDocument
from planexport.planner.reader import PlanReader

logger = logging.getLogger(__name__)

GLB_CONTENT_TYPE = "model/gltf-binary"


async def export_plan_to_glb(
    document: Union[FloorPlanDocument, Any],
    textures_by_type: Optional[Any] = None,
    *,
    config: Optional[ExportConfig] = None,
    reader: Optional[PlanReader] = None,
    generator_config: Optional[GeneratorConfig] = None,
    fetcher: Optional[TextureFetcher] = None,
) -> bytes:
    """
    Convert a floor-plan document into a GLB payload.

    Args:
        document: Decoded scene JSON or an already-read FloorPlanDocument
        textures_by_type: Optional texture catalog keyed by element type, then texture name
        config: Export configuration (fetch timeout)
        reader: Reader carrying the element defaults; a default reader when omitted
        generator_config: Geometry generation options
        fetcher: Texture fetcher; one is created (and closed) per call when omitted

    Returns:
        The complete binary payload

    Raises:
        InvalidDocumentError: If the document is not a scene object
        EmptySceneError: If no visible layer or no mesh was produced
        TextureUnavailableError: If a referenced texture cannot be fetched
    """
    config = config or ExportConfig()

    if not isinstance(document, FloorPlanDocument):
        document = (reader or PlanReader()).read(document)
    if not document.visible_layers:
        raise EmptySceneError("Floor plan has no usable layers")

    scene = ModelGenerator(generator_config).generate(document)

    catalog = select_catalog(document, TextureCatalog.from_dict(textures_by_type))
    resolver = MaterialResolver(catalog, fetcher or TextureFetcher(timeout=config.fetch_timeout))
    try:
        glb = await SceneExporter(resolver).export(scene)
    finally:
        await resolver.close(close_fetcher=fetcher is None)

    logger.info(f"Exported {len(glb)} bytes ({scene.stats.meshes} meshes)")
    return glb
