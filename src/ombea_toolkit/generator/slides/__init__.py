"""
Module: generator.slides

Purpose:
    Slide-level synthesis: question slides with their tag bundles, intro
    slides, and the layouts they are built on.

Key Functions:
    - build_tag_bundle(): Four tag parts + slide GUID for one question
    - write_question_slide(): Question slide + relationships
    - write_intro_slide(): Title or participants slide
    - ensure_question_layout(): Add the question layout to the package
    - find_layout_by_name(): Locate a template layout
    - harvest_template_guids(): GUIDs already present in the template

Used By:
    - generator.controller
"""

from .intro_slides import (
    build_participants_slide,
    build_participants_table,
    build_title_slide,
    column_widths,
    write_intro_slide,
)
from .layouts import (
    QUESTION_LAYOUT_NAME,
    QuestionLayout,
    build_question_layout,
    ensure_question_layout,
    find_layout_by_name,
)
from .question_slide import (
    build_question_slide,
    build_question_slide_rels,
    write_question_slide,
)
from .tags import (
    TAGS_PER_QUESTION,
    TagBundle,
    build_tag_bundle,
    check_tag_continuity,
    generate_guid,
    harvest_template_guids,
    highest_tag_number,
    read_slide_guid,
    tag_base_number,
    write_tag_bundle,
)

__all__ = [
    # Intro slides
    "build_participants_slide",
    "build_participants_table",
    "build_title_slide",
    "column_widths",
    "write_intro_slide",
    # Layouts
    "QUESTION_LAYOUT_NAME",
    "QuestionLayout",
    "build_question_layout",
    "ensure_question_layout",
    "find_layout_by_name",
    # Question slides
    "build_question_slide",
    "build_question_slide_rels",
    "write_question_slide",
    # Tags
    "TAGS_PER_QUESTION",
    "TagBundle",
    "build_tag_bundle",
    "check_tag_continuity",
    "generate_guid",
    "harvest_template_guids",
    "highest_tag_number",
    "read_slide_guid",
    "tag_base_number",
    "write_tag_bundle",
]
