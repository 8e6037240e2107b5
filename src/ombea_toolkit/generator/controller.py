"""
Module: generator.controller

Purpose:
    Orchestrate the complete generation pipeline.
    Copy → Layout → Plan → Images → Tags + Slides → Intro → Rebuild → Assemble → Deliver

Key Functions:
    - generate_presentation(): Main entry point for one generation call
    - existing_slide_order(): Template slide file numbers in display order

Key Classes:
    - GenerationResult: Package, delivery archive and question mappings
    - GenerationError: Exception for generation failures

Dependencies:
    - generator.package: Archive arena, relationship rebuild, assembly
    - generator.slides: Layouts, tags, question and intro slides
    - generator.images: Parallel image fetch
    - generator.output: ORSession.xml and delivery archive

Used By:
    - cli: `ombea-toolkit generate`
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ombea_toolkit.common import part_number, qn, resolve_target
from ombea_toolkit.core.models import Question, QuestionMapping, RosterEntry

from .config import GeneratorConfig, SessionInfo
from .images import embed_images, write_images
from .output import build_delivery_archive, roster_document_bytes
from .package import (
    PRESENTATION_PART,
    PRESENTATION_RELS_PART,
    PackageArchive,
    PackageError,
    RelType,
    SlidePlan,
    SlideRole,
    assemble_package,
    parse_relationships,
    rebuild_presentation_relationships,
)
from .slides import (
    TAGS_PER_QUESTION,
    build_tag_bundle,
    check_tag_continuity,
    ensure_question_layout,
    find_layout_by_name,
    harvest_template_guids,
    highest_tag_number,
    write_intro_slide,
    write_question_slide,
    write_tag_bundle,
)

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Error during generation pipeline."""
    pass


@dataclass(frozen=True)
class GenerationResult:
    """
    Complete generation result (immutable).

    Nothing is written to disk by the pipeline; the caller commits these
    bytes only once the call has returned.

    Attributes:
        package_bytes: Generated presentation package
        delivery_bytes: Distribution archive (presentation + ORSession.xml)
        output_name: Presentation file name inside the delivery archive
        mappings: One QuestionMapping per input question, in order
        ignored_slide_guids: GUIDs the template already carried
        warnings: Recoverable problems met during generation

    Example:
        >>> result = generate_presentation(config, questions)
        >>> [m.order for m in result.mappings]
        [1, 2, 3]
    """

    package_bytes: bytes
    delivery_bytes: bytes
    output_name: str
    mappings: Tuple[QuestionMapping, ...]
    ignored_slide_guids: Tuple[str, ...]
    warnings: Tuple[str, ...]


def existing_slide_order(archive: PackageArchive) -> Tuple[int, ...]:
    """
    File numbers of the template's slides, in display order.

    Display order comes from `p:sldIdLst`; slides linked from the
    presentation relationships but absent from the list follow in
    relationship order.
    """
    rels = parse_relationships(archive.read_xml(PRESENTATION_RELS_PART))
    slide_targets: Dict[str, int] = {}
    for entry in rels:
        if entry.rel_type != RelType.SLIDE.value:
            continue
        number = part_number(resolve_target(PRESENTATION_PART, entry.target))
        if number is not None:
            slide_targets[entry.rid] = number

    order: List[int] = []
    presentation = archive.read_xml(PRESENTATION_PART)
    id_lst = presentation.find(qn("p:sldIdLst"))
    if id_lst is not None:
        for sld_id in id_lst.findall(qn("p:sldId")):
            number = slide_targets.get(sld_id.get(qn("r:id")))
            if number is None:
                logger.warning(f"sldIdLst entry {sld_id.get(qn('r:id'))} has no slide relationship")
                continue
            if number not in order:
                order.append(number)
    for number in slide_targets.values():
        if number not in order:
            order.append(number)
    return tuple(order)


def _plan_intro_slides(
    archive: PackageArchive,
    plan: SlidePlan,
    config: GeneratorConfig,
    session: Optional[SessionInfo],
    roster: Sequence[RosterEntry],
    warnings: List[str],
) -> None:
    requests = []
    if session is not None and config.intro_layouts.title_layout_name:
        requests.append((SlideRole.INTRO_TITLE, config.intro_layouts.title_layout_name, "title"))
    if roster and config.intro_layouts.participants_layout_name:
        requests.append(
            (SlideRole.INTRO_ROSTER, config.intro_layouts.participants_layout_name, "participants")
        )
    for role, layout_name, kind in requests:
        layout = find_layout_by_name(archive, layout_name, kind)
        if layout is None:
            message = f"Layout {layout_name!r} not found, {role.value} slide skipped"
            logger.warning(message)
            warnings.append(message)
            continue
        plan.add_intro(role, layout)


def generate_presentation(
    config: GeneratorConfig,
    questions: Sequence[Question],
    session: Optional[SessionInfo] = None,
    roster: Sequence[RosterEntry] = (),
    template_bytes: Optional[bytes] = None,
) -> GenerationResult:
    """
    Generate a polling presentation and its delivery archive.

    Pipeline:
    1. Copy the template into an in-memory arena
    2. Harvest GUIDs the template already carries
    3. Add the question layout
    4. Plan slides: intro slides first, template slides, then questions
    5. Fetch and embed question images (parallel, per-item failures)
    6. Emit four tag parts and one slide per question
    7. Emit intro slides
    8. Rebuild presentation relationships and assemble manifests
    9. Build ORSession.xml and the delivery archive

    Args:
        config: Generation configuration
        questions: Questions, in slide order
        session: Title slide details; no title slide when None
        roster: Participants; no participants slide when empty
        template_bytes: Template package; read from
            `config.template_path` when None

    Returns:
        GenerationResult with bytes, mappings and warnings

    Raises:
        GenerationError: If the template is unusable or the input invalid

    Example:
        >>> config = GeneratorConfig(template_path=Path("template.pptx"))
        >>> result = generate_presentation(config, questions, roster=roster)
        >>> len(result.mappings) == len(questions)
        True
    """
    warnings: List[str] = []
    start_time = time.perf_counter()

    if not questions:
        raise GenerationError("No questions to generate")
    duplicates = _duplicate_ids(questions)
    if duplicates:
        raise GenerationError(f"Duplicate question ids: {duplicates}")

    logger.info(f"Starting generation: {len(questions)} questions, {len(roster)} participants")

    # 1. Working copy
    try:
        if template_bytes is not None:
            archive = PackageArchive.from_bytes(template_bytes, source="<template>")
        else:
            archive = PackageArchive.from_path(config.template_path)
        archive.require()

        # 2. Template GUIDs and tag offset
        ignored = harvest_template_guids(archive)
        tag_offset = highest_tag_number(archive)
        logger.info(f"Tag offset {tag_offset}, {len(ignored)} template GUID(s)")

        # 3. Question layout
        layout = ensure_question_layout(archive)

        # 4. Slide plan
        plan = SlidePlan(existing=existing_slide_order(archive))
        _plan_intro_slides(archive, plan, config, session, roster, warnings)
        question_slides = plan.add_questions(len(questions), layout.part_name)
        logger.info(
            f"Planned {plan.total} slides: {len(plan.intros)} intro, "
            f"{len(plan.existing)} template, {len(question_slides)} questions"
        )

        # 5. Images
        references = {
            descriptor.file_number: question.image
            for descriptor, question in zip(question_slides, questions)
            if question.image
        }
        batch = embed_images(references, workers=config.image_workers, timeout=config.image_timeout)
        for number, message in sorted(batch.failures.items()):
            warnings.append(f"Slide {number}: image skipped ({message})")
        image_parts = write_images(archive, batch.images)

        # 6. Tags and question slides
        mappings: List[QuestionMapping] = []
        for descriptor, question in zip(question_slides, questions):
            bundle = build_tag_bundle(question, descriptor.question_index, tag_offset, config)
            write_tag_bundle(archive, bundle)
            write_question_slide(
                archive,
                descriptor,
                question,
                bundle,
                config,
                batch.images.get(descriptor.file_number),
            )
            mappings.append(
                QuestionMapping(
                    question_id=question.question_id,
                    slide_guid=bundle.slide_guid,
                    order=descriptor.question_index,
                    theme=question.theme,
                    block=question.block,
                )
            )
        last_tag = tag_offset + TAGS_PER_QUESTION * len(questions)
        warnings.extend(check_tag_continuity(archive, 1, last_tag))

        # 7. Intro slides
        for descriptor in plan.intros:
            write_intro_slide(archive, descriptor, session or SessionInfo(title=""), roster)

        # 8. Relationships and manifests
        rebuild = rebuild_presentation_relationships(
            parse_relationships(archive.read_xml(PRESENTATION_RELS_PART)), plan
        )
        warnings.extend(
            assemble_package(
                archive,
                plan,
                rebuild,
                questions,
                layout_parts=(layout.part_name,),
                tag_count=last_tag,
                image_parts=image_parts,
            )
        )
        package_bytes = archive.to_bytes()

        # 9. Delivery
        delivery_bytes = build_delivery_archive(
            config.output_name, package_bytes, roster_document_bytes(roster)
        )
    except PackageError as e:
        logger.error(f"Generation failed: {e}")
        raise GenerationError(f"Template package error: {e}") from e
    except ValueError as e:
        logger.error(f"Generation failed: {e}")
        raise GenerationError(f"Invalid generation input: {e}") from e

    elapsed = time.perf_counter() - start_time
    logger.info(
        f"Generation completed in {elapsed:.2f}s: {len(mappings)} questions, "
        f"{len(warnings)} warning(s)"
    )
    return GenerationResult(
        package_bytes=package_bytes,
        delivery_bytes=delivery_bytes,
        output_name=config.output_name,
        mappings=tuple(mappings),
        ignored_slide_guids=tuple(ignored),
        warnings=tuple(warnings),
    )


def _duplicate_ids(questions: Sequence[Question]) -> List[int]:
    seen = set()
    duplicates = []
    for question in questions:
        if question.question_id in seen and question.question_id not in duplicates:
            duplicates.append(question.question_id)
        seen.add(question.question_id)
    return duplicates
