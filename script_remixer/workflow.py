"""Workflow controller: the state machine that sequences the remix pipelines.

Style capture -> blueprint approval -> scene production -> refinement loop.
The controller owns the ScriptState; pipelines only receive copies of what
they need and hand back new values.
"""

import asyncio
from dataclasses import replace
from datetime import date
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from .agents import BlueprintArchitect, SceneWriter, ScriptDoctor, StyleAnalyst
from .config import ENTROPY_MAX, ENTROPY_MIN, AppConfig
from .directors import get_director
from .errors import PipelineError, StageTransitionError, ValidationError
from .export import export_filename, render_script
from .llm import GeminiClient, TextGenerator
from .models.script_state import (
    Chapter,
    ChapterStatus,
    Character,
    GenerationStage,
    ScriptState,
    StoryBible,
)

Stage = GenerationStage
T = TypeVar("T")

BatchProgress = Callable[[Chapter, int, int], None]

CHARACTER_FIELDS = ("name", "archetype", "description")
RETRYABLE = (ChapterStatus.PENDING, ChapterStatus.ERROR)


class _Abandoned(Exception):
    """A tracked generation whose result must be dropped because of a reset."""


class WorkflowController:
    """Owns the session state and drives every generation through one slot."""

    def __init__(
        self,
        config: AppConfig,
        client: Optional[TextGenerator] = None,
        state: Optional[ScriptState] = None,
    ):
        self.config = config
        self.client = client if client is not None else GeminiClient(config.gemini)
        gc = config.generation

        self.style_analyst = StyleAnalyst(self.client, gc)
        self.blueprint_architect = BlueprintArchitect(self.client, gc)
        self.scene_writer = SceneWriter(self.client, gc)
        self.script_doctor = ScriptDoctor(self.client, gc)

        self.state = state if state is not None else ScriptState(entropy=gc.entropy)
        self._drafts: dict[int, str] = {}
        self._tasks: dict[object, asyncio.Task] = {}
        self._slot = asyncio.Lock()
        self._epoch = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def stage(self) -> GenerationStage:
        return self.state.stage

    @property
    def is_generating(self) -> bool:
        return self._slot.locked()

    def story_bible(self) -> StoryBible:
        return StoryBible(
            style_dna=self.state.style_dna,
            feasibility_report=self.state.feasibility_report,
            characters=list(self.state.valid_characters),
        )

    def dismiss_error(self) -> None:
        self.state.error = None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def select_style(self, style: str) -> None:
        self._require_stage("select a style", Stage.STYLE_INPUT)
        try:
            director = get_director(style)
        except KeyError:
            raise ValidationError(f"Unknown director style: {style}")
        self.state.selected_style = director.id.value

    def set_corpus(self, text: str) -> None:
        self.state.custom_corpus = text

    def set_outline(self, text: str) -> None:
        self.state.outline = text

    def set_entropy(self, value: float) -> None:
        if not ENTROPY_MIN <= value <= ENTROPY_MAX:
            raise ValidationError(
                f"Entropy must be between {ENTROPY_MIN} and {ENTROPY_MAX}, got {value}"
            )
        self.state.entropy = value

    def add_character(self, name: str = "", archetype: str = "", description: str = "") -> Character:
        character = Character(name=name, archetype=archetype, description=description)
        self.state.characters = [*self.state.characters, character]
        return character

    def update_character(self, character_id: str, field: str, value: str) -> None:
        if field not in CHARACTER_FIELDS:
            raise ValidationError(f"Unknown character field: {field}")
        self.state.characters = [
            replace(c, **{field: value}) if c.id == character_id else c
            for c in self.state.characters
        ]

    def remove_character(self, character_id: str) -> None:
        if len(self.state.characters) <= 1:
            return
        self.state.characters = [c for c in self.state.characters if c.id != character_id]

    # ------------------------------------------------------------------
    # Phase 1: style
    # ------------------------------------------------------------------
    async def extract_style(self) -> bool:
        self._require_stage("extract a style", Stage.STYLE_INPUT)
        self.state.error = None
        self._set_stage(Stage.STYLE_ANALYZING)

        async with self._slot:
            try:
                dna = await self._track(
                    "style",
                    self.style_analyst.extract_style_dna(
                        self.state.selected_style, self.state.custom_corpus
                    ),
                )
            except _Abandoned:
                return False
            except PipelineError as e:
                self.state.error = str(e)
                self._set_stage(Stage.STYLE_INPUT)
                return False

        self.state.style_dna = dna
        self._set_stage(Stage.STYLE_CONFIRMED)
        return True

    def relearn_style(self) -> None:
        self._require_stage("re-learn the style", Stage.STYLE_CONFIRMED)
        self._set_stage(Stage.STYLE_INPUT)

    def proceed_to_blueprint(self) -> None:
        self._require_stage("proceed to the blueprint", Stage.STYLE_CONFIRMED)
        self._set_stage(Stage.BLUEPRINT_INPUT)

    def review_style(self) -> None:
        """Step back to the confirmed style report from a later phase."""
        self._require_stage(
            "review the style",
            Stage.BLUEPRINT_INPUT,
            Stage.BLUEPRINT_REVIEW,
            Stage.PRODUCTION,
        )
        if not self.state.style_dna:
            raise StageTransitionError("No style has been extracted yet")
        self._set_stage(Stage.STYLE_CONFIRMED)

    # ------------------------------------------------------------------
    # Phase 2: blueprint
    # ------------------------------------------------------------------
    async def create_blueprint(self) -> bool:
        self._require_stage("create a blueprint", Stage.BLUEPRINT_INPUT)
        if not self.state.outline.strip():
            self.state.error = "Please enter a story outline."
            return False

        self.state.error = None
        self._set_stage(Stage.BLUEPRINT_ANALYZING)

        async with self._slot:
            try:
                blueprint = await self._track(
                    "blueprint",
                    self.blueprint_architect.generate_blueprint(
                        self.state.style_dna,
                        self.state.outline,
                        list(self.state.valid_characters),
                        self.state.entropy,
                    ),
                )
            except _Abandoned:
                return False
            except PipelineError as e:
                self.state.error = str(e)
                self._set_stage(Stage.BLUEPRINT_INPUT)
                return False

        self._drafts.clear()
        self.state.feasibility_report = blueprint.feasibility
        self.state.chapters = blueprint.chapters
        self.state.current_chapter_id = None
        self._set_stage(Stage.BLUEPRINT_REVIEW)
        return True

    def retry_blueprint(self) -> None:
        self._require_stage("retry the blueprint", Stage.BLUEPRINT_REVIEW)
        self._set_stage(Stage.BLUEPRINT_INPUT)

    def approve_blueprint(self) -> bool:
        self._require_stage("approve the blueprint", Stage.BLUEPRINT_REVIEW)
        if not self.state.chapters:
            self.state.error = "The blueprint has no scenes. Adjust the outline and retry."
            return False
        self.state.current_chapter_id = self.state.chapters[0].id
        self._set_stage(Stage.PRODUCTION)
        return True

    def review_blueprint(self) -> None:
        """Step back from production to the blueprint review."""
        self._require_stage("review the blueprint", Stage.PRODUCTION)
        self._set_stage(Stage.BLUEPRINT_REVIEW)

    # ------------------------------------------------------------------
    # Phase 3: production
    # ------------------------------------------------------------------
    def select_chapter(self, chapter_id: int) -> None:
        if self.state.find_chapter(chapter_id) is None:
            raise ValidationError(f"No chapter with id {chapter_id}")
        self.state.current_chapter_id = chapter_id

    async def write_chapter(self, chapter_id: int) -> bool:
        self._require_stage("write a chapter", Stage.PRODUCTION)
        chapter = self.state.find_chapter(chapter_id)
        if chapter is None:
            self.state.error = f"No chapter with id {chapter_id}."
            return False
        if chapter.status is ChapterStatus.GENERATING:
            logger.warning(f"Chapter {chapter_id} is already being written, ignoring request")
            return False

        async with self._slot:
            return await self._write_locked(chapter_id, clear_error=True)

    async def write_all_remaining(self, progress: Optional[BatchProgress] = None) -> int:
        """Write every pending or failed chapter in ascending id order.

        A failing chapter is marked ``error`` and the batch moves on. Returns
        the number of chapters completed by this run.
        """
        self._require_stage("write remaining chapters", Stage.PRODUCTION)
        epoch = self._epoch
        queue = [
            c.id
            for c in sorted(self.state.chapters, key=lambda c: c.id)
            if c.status in RETRYABLE
        ]
        total = len(queue)
        logger.info(f"Batch writing {total} chapters: {queue}")

        completed = 0
        for position, chapter_id in enumerate(queue, start=1):
            if epoch != self._epoch:
                logger.info("Session was reset, stopping batch")
                break
            self.state.current_chapter_id = chapter_id
            async with self._slot:
                # A single-chapter write may have taken it while we waited.
                chapter = self.state.find_chapter(chapter_id)
                if chapter is None or chapter.status not in RETRYABLE:
                    continue
                if await self._write_locked(chapter_id, clear_error=False):
                    completed += 1

            if progress is not None:
                updated = self.state.find_chapter(chapter_id)
                if updated is not None:
                    progress(updated, position, total)
            if position < total and self.config.generation.batch_delay_seconds > 0:
                await asyncio.sleep(self.config.generation.batch_delay_seconds)

        logger.info(f"Batch finished: {completed}/{total} chapters completed")
        return completed

    async def _write_locked(self, chapter_id: int, clear_error: bool) -> bool:
        # Caller holds the generation slot.
        if self.state.stage is not Stage.PRODUCTION:
            return False
        index = self._index_of(chapter_id)
        if index is None:
            return False

        gaps = [c.id for c in self.state.chapters[:index] if c.status is not ChapterStatus.COMPLETED]
        if gaps:
            logger.warning(f"Writing chapter {chapter_id} before chapters {gaps} are completed")

        if clear_error:
            self.state.error = None
        self._update_chapter(chapter_id, status=ChapterStatus.GENERATING)
        logger.info(f"Writing chapter {chapter_id} (entropy={self.state.entropy})")

        try:
            content = await self._track(
                chapter_id,
                self.scene_writer.write_scene(
                    index,
                    list(self.state.chapters),
                    self.state.style_dna,
                    self.state.outline,
                    list(self.state.valid_characters),
                    self.state.entropy,
                ),
            )
        except _Abandoned:
            return False
        except PipelineError as e:
            self._update_chapter(chapter_id, status=ChapterStatus.ERROR)
            self.state.error = f"Chapter {chapter_id} failed: {e}"
            logger.error(self.state.error)
            return False

        self._update_chapter(chapter_id, status=ChapterStatus.COMPLETED, content=content)
        return True

    # ------------------------------------------------------------------
    # Refinement and manual edits
    # ------------------------------------------------------------------
    async def refine_chapter(self, chapter_id: int, instruction: str) -> bool:
        """Rewrite a chapter from a director's note; the open draft is the source if any."""
        self._require_stage("refine a chapter", Stage.PRODUCTION)
        if not instruction.strip():
            self.state.error = "Please enter a refinement instruction."
            return False
        chapter = self.state.find_chapter(chapter_id)
        if chapter is None:
            self.state.error = f"No chapter with id {chapter_id}."
            return False

        if chapter_id in self._drafts:
            chapter = replace(chapter, content=self._drafts[chapter_id])
        source = chapter.content
        if not chapter.has_content:
            self.state.error = f"Chapter {chapter_id} has no content to refine yet."
            return False

        async with self._slot:
            self.state.error = None
            try:
                revised = await self._track(
                    chapter_id,
                    self.script_doctor.refine(
                        source,
                        instruction,
                        self.state.style_dna,
                        list(self.state.valid_characters),
                    ),
                )
            except _Abandoned:
                return False
            except PipelineError as e:
                self.state.error = f"Chapter {chapter_id}: {e}"
                return False

        if self.state.find_chapter(chapter_id) is None:
            return False
        self._update_chapter(chapter_id, content=revised)
        if chapter_id in self._drafts:
            self._drafts[chapter_id] = revised
        return True

    def begin_edit(self, chapter_id: int) -> str:
        self._require_stage("edit a chapter", Stage.PRODUCTION)
        chapter = self.state.find_chapter(chapter_id)
        if chapter is None:
            raise ValidationError(f"No chapter with id {chapter_id}")
        self._drafts[chapter_id] = chapter.content
        return chapter.content

    def draft(self, chapter_id: int) -> Optional[str]:
        return self._drafts.get(chapter_id)

    def update_draft(self, chapter_id: int, text: str) -> None:
        if chapter_id not in self._drafts:
            raise ValidationError(f"Chapter {chapter_id} is not open for editing")
        self._drafts[chapter_id] = text

    def save_edit(self, chapter_id: int) -> None:
        if chapter_id not in self._drafts:
            raise ValidationError(f"Chapter {chapter_id} is not open for editing")
        self._update_chapter(chapter_id, content=self._drafts.pop(chapter_id))

    def cancel_edit(self, chapter_id: int) -> None:
        self._drafts.pop(chapter_id, None)

    def edit_chapter(self, chapter_id: int, content: str) -> None:
        """Commit hand-written content directly, status unchanged."""
        self.begin_edit(chapter_id)
        self.update_draft(chapter_id, content)
        self.save_edit(chapter_id)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def reset(self) -> None:
        """Back to style input; learned context and chapters are dropped, inputs kept."""
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        self._drafts.clear()
        self._epoch += 1

        self.state.chapters = []
        self.state.style_dna = ""
        self.state.feasibility_report = ""
        self.state.current_chapter_id = None
        self.state.error = None
        self._set_stage(Stage.STYLE_INPUT)

    def export_script(self) -> str:
        return render_script(self.state.chapters)

    def export_filename(self, day: Optional[date] = None) -> str:
        return export_filename(self.state.selected_style, day or date.today())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _require_stage(self, action: str, *allowed: GenerationStage) -> None:
        if self.state.stage not in allowed:
            raise StageTransitionError(
                f"Cannot {action} while in {self.state.stage.value}"
            )

    def _set_stage(self, stage: GenerationStage) -> None:
        if stage is not self.state.stage:
            logger.info(f"Stage {self.state.stage.value} -> {stage.value}")
        self.state.stage = stage

    def _index_of(self, chapter_id: int) -> Optional[int]:
        for i, chapter in enumerate(self.state.chapters):
            if chapter.id == chapter_id:
                return i
        return None

    def _update_chapter(self, chapter_id: int, **changes) -> None:
        self.state.chapters = [
            replace(c, **changes) if c.id == chapter_id else c for c in self.state.chapters
        ]

    async def _track(self, key: object, coro: Awaitable[T]) -> T:
        """Run one generation as a cancellable task; reset() drops its result."""
        epoch = self._epoch
        task = asyncio.ensure_future(coro)
        self._tasks[key] = task
        try:
            result = await task
        except asyncio.CancelledError:
            if epoch != self._epoch:
                logger.info(f"Generation for {key!r} abandoned by reset")
                raise _Abandoned()
            raise
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]
        if epoch != self._epoch:
            raise _Abandoned()
        return result
