"""
Module: generator.package.slide_plan

Purpose:
    One authoritative ordering of the slides in the generated package.
    File numbers (slideN.xml) and display positions differ: intro slides
    are numbered after the template's slides but shown first. Every
    component that needs "which slide goes where" asks the plan instead
    of recomputing it from counts.

Key Classes:
    - SlideRole: intro-title / intro-roster / existing / question
    - SlideDescriptor: One slide: role, file number, question index
    - SlidePlan: Ordered descriptors and numbering helpers

Used By:
    - generator.package.relationships: relationship rebuild
    - generator.package.assembler: content types, slide-order list
    - generator.controller
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ombea_toolkit.common import slide_part


class SlideRole(str, Enum):
    INTRO_TITLE = "intro-title"
    INTRO_ROSTER = "intro-roster"
    EXISTING = "existing"
    QUESTION = "question"


@dataclass(frozen=True)
class SlideDescriptor:
    """
    One slide of the final package.

    Attributes:
        role: Why the slide exists
        file_number: N in ppt/slides/slideN.xml
        question_index: 1-based index in the generation batch (questions only)
        layout_part: Layout the slide uses (new slides only)
    """

    role: SlideRole
    file_number: int
    question_index: Optional[int] = None
    layout_part: Optional[str] = None

    @property
    def part_name(self) -> str:
        return slide_part(self.file_number)

    @property
    def rels_target(self) -> str:
        """Target as written in the presentation relationship list."""
        return f"slides/slide{self.file_number}.xml"

    @property
    def is_new(self) -> bool:
        return self.role is not SlideRole.EXISTING


@dataclass
class SlidePlan:
    """
    Ordered slide plan: intro slides, then template slides, then questions.

    Built in three steps by the controller: construct with the template's
    slide file numbers (in presentation order), add intro slides, then
    add the question slides. New file numbers always continue after the
    highest number already allocated, so they never collide.

    Example:
        >>> plan = SlidePlan(existing=(1, 2))
        >>> plan.add_intro(SlideRole.INTRO_TITLE, "ppt/slideLayouts/slideLayout1.xml").file_number
        3
        >>> [d.file_number for d in plan.add_questions(2)]
        [4, 5]
        >>> [d.file_number for d in plan.ordered()]
        [3, 1, 2, 4, 5]
    """

    existing: Tuple[int, ...] = ()
    intros: List[SlideDescriptor] = field(default_factory=list)
    questions: List[SlideDescriptor] = field(default_factory=list)

    def _next_file_number(self) -> int:
        used = list(self.existing)
        used.extend(d.file_number for d in self.intros)
        used.extend(d.file_number for d in self.questions)
        return max(used, default=0) + 1

    def add_intro(self, role: SlideRole, layout_part: str) -> SlideDescriptor:
        if self.questions:
            raise ValueError("Intro slides must be planned before question slides")
        descriptor = SlideDescriptor(role, self._next_file_number(), layout_part=layout_part)
        self.intros.append(descriptor)
        return descriptor

    def add_questions(self, count: int, layout_part: Optional[str] = None) -> List[SlideDescriptor]:
        added = []
        for _ in range(count):
            descriptor = SlideDescriptor(
                SlideRole.QUESTION,
                self._next_file_number(),
                question_index=len(self.questions) + 1,
                layout_part=layout_part,
            )
            self.questions.append(descriptor)
            added.append(descriptor)
        return added

    def existing_descriptors(self) -> List[SlideDescriptor]:
        return [SlideDescriptor(SlideRole.EXISTING, n) for n in self.existing]

    def ordered(self) -> List[SlideDescriptor]:
        """All slides in display order."""
        return list(self.intros) + self.existing_descriptors() + list(self.questions)

    def new_slides(self) -> List[SlideDescriptor]:
        return list(self.intros) + list(self.questions)

    @property
    def total(self) -> int:
        return len(self.existing) + len(self.intros) + len(self.questions)
