"""
Module: generator.package

Purpose:
    Package-level plumbing for the generator: the in-memory archive
    arena, the slide plan, the relationship rebuild and the final
    manifest assembly.

Key Classes:
    - PackageArchive: Ordered arena of package parts
    - SlidePlan: Authoritative slide ordering
    - RelationshipEntry / RelationshipRebuild: Relationship lists

Key Functions:
    - rebuild_presentation_relationships(): Renumber presentation rIds
    - assemble_package(): Rewrite content types, sldIdLst and docProps

Used By:
    - generator.controller
    - generator.slides
"""

from .archive import (
    CONTENT_TYPES_PART,
    MASTER_PART,
    MASTER_RELS_PART,
    PRESENTATION_PART,
    PRESENTATION_RELS_PART,
    REQUIRED_PARTS,
    PackageArchive,
    PackageError,
)
from .assembler import (
    SlideSize,
    assemble_package,
    read_slide_size,
    rebuild_presentation_xml,
    update_app_properties,
    update_content_types,
    update_core_properties,
)
from .relationships import (
    RelationshipEntry,
    RelationshipRebuild,
    RelType,
    build_relationships,
    dangling_references,
    next_rid,
    parse_relationships,
    rebuild_presentation_relationships,
    remap_references,
)
from .slide_plan import SlideDescriptor, SlidePlan, SlideRole

__all__ = [
    # Archive
    "CONTENT_TYPES_PART",
    "MASTER_PART",
    "MASTER_RELS_PART",
    "PRESENTATION_PART",
    "PRESENTATION_RELS_PART",
    "REQUIRED_PARTS",
    "PackageArchive",
    "PackageError",
    # Assembler
    "SlideSize",
    "assemble_package",
    "read_slide_size",
    "rebuild_presentation_xml",
    "update_app_properties",
    "update_content_types",
    "update_core_properties",
    # Relationships
    "RelationshipEntry",
    "RelationshipRebuild",
    "RelType",
    "build_relationships",
    "dangling_references",
    "next_rid",
    "parse_relationships",
    "rebuild_presentation_relationships",
    "remap_references",
    # Slide plan
    "SlideDescriptor",
    "SlidePlan",
    "SlideRole",
]
