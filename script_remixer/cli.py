import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from . import __version__
from .access import AccessGate
from .config import AppConfig
from .directors import DIRECTORS
from .errors import StageTransitionError, ValidationError
from .export import write_script
from .llm import GeminiClient
from .models.script_state import ChapterStatus, GenerationStage, ScriptState
from .session import load_session, save_session
from .utils.logger import setup_logger
from .utils.progress import create_progress
from .workflow import WorkflowController

console = Console()

OPEN_COMMANDS = {"unlock", "lock", "directors", "init-config"}

STATUS_STYLES = {
    ChapterStatus.PENDING: "dim",
    ChapterStatus.GENERATING: "yellow",
    ChapterStatus.COMPLETED: "green",
    ChapterStatus.ERROR: "red",
}

session_option = click.option(
    '--session', '-s', 'session_path', type=click.Path(dir_okay=False),
    default='remix_session.json', show_default=True, help='Session state file',
)


@click.group()
@click.option('--config', '-c', type=click.Path(dir_okay=False), default='config.yaml',
              help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool):
    """Script Remixer - rewrite your story through a director's lens."""
    ctx.ensure_object(dict)

    config_path = Path(config)
    if config_path.exists():
        ctx.obj['config'] = AppConfig.from_yaml(config_path)
    else:
        ctx.obj['config'] = AppConfig()

    log_level = "DEBUG" if verbose else ctx.obj['config'].log_level
    logger = setup_logger(log_level)
    ctx.obj['logger'] = logger

    logger.debug(f"Script Remixer v{__version__}")
    if config_path.exists():
        logger.debug(f"Config loaded from: {config_path}")

    access = ctx.obj['config'].access
    gate = AccessGate(access.password, access.session_file)
    ctx.obj['gate'] = gate
    if ctx.invoked_subcommand not in OPEN_COMMANDS and not gate.is_unlocked():
        raise click.ClickException("Workspace is locked. Run `script-remixer unlock` first.")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _open_controller(ctx: click.Context, session_path: str, needs_backend: bool = True) -> WorkflowController:
    config: AppConfig = ctx.obj['config']
    if needs_backend and not config.gemini.api_key.strip():
        raise click.ClickException(
            "Gemini API key is missing. Set GEMINI_API_KEY or gemini.api_key in the config file."
        )

    path = Path(session_path)
    state = load_session(path) if path.exists() else ScriptState(entropy=config.generation.entropy)
    return WorkflowController(config, client=GeminiClient(config.gemini), state=state)


def _save(controller: WorkflowController, session_path: str) -> None:
    save_session(controller.state, Path(session_path))


def _raise_on_error(controller: WorkflowController, session_path: str) -> None:
    if controller.state.error:
        _save(controller, session_path)
        raise click.ClickException(controller.state.error)


def _read_text(path: str | None) -> str:
    if not path:
        return ""
    return Path(path).read_text(encoding="utf-8")


def _parse_character(spec: str) -> tuple[str, str, str]:
    name, _, rest = spec.partition("|")
    archetype, _, description = rest.partition("|")
    if not name.strip():
        raise click.BadParameter(f"Character needs a name: {spec!r}", param_hint="--character")
    return name.strip(), archetype.strip(), description.strip()


def _replace_characters(controller: WorkflowController, specs: tuple[str, ...]) -> None:
    old_ids = [c.id for c in controller.state.characters]
    for spec in specs:
        controller.add_character(*_parse_character(spec))
    for character_id in old_ids:
        controller.remove_character(character_id)


def _chapter_table(controller: WorkflowController) -> Table:
    table = Table(title="Scenes")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Length", justify="right")
    for chapter in controller.state.chapters:
        marker = "▶ " if chapter.id == controller.state.current_chapter_id else ""
        style = STATUS_STYLES[chapter.status]
        table.add_row(
            f"{marker}{chapter.id}",
            chapter.title,
            f"[{style}]{chapter.status.value}[/{style}]",
            str(len(chapter.content)),
        )
    return table


def _enter_blueprint_input(controller: WorkflowController) -> None:
    stage = controller.stage
    if stage is GenerationStage.STYLE_CONFIRMED:
        controller.proceed_to_blueprint()
    elif stage is GenerationStage.BLUEPRINT_REVIEW:
        controller.retry_blueprint()
    elif stage is GenerationStage.PRODUCTION:
        controller.review_blueprint()
        controller.retry_blueprint()
    elif stage is not GenerationStage.BLUEPRINT_INPUT:
        raise click.ClickException("Extract a style first (`script-remixer style`).")


def _enter_production(controller: WorkflowController, session_path: str) -> None:
    if controller.stage is GenerationStage.BLUEPRINT_REVIEW:
        if not controller.approve_blueprint():
            _raise_on_error(controller, session_path)
    if controller.stage is not GenerationStage.PRODUCTION:
        raise click.ClickException("Create a blueprint first (`script-remixer blueprint`).")


def _run_batch(controller: WorkflowController) -> int:
    remaining = sum(1 for c in controller.state.chapters if c.status in (ChapterStatus.PENDING, ChapterStatus.ERROR))
    with create_progress(console) as progress:
        task_id = progress.add_task("Writing scenes...", total=remaining)

        def advance(chapter, position, total):
            progress.update(
                task_id,
                advance=1,
                description=f"Scene {chapter.id}: {chapter.status.value}",
            )

        return asyncio.run(controller.write_all_remaining(progress=advance))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@cli.command()
def directors():
    """List the available director styles."""
    table = Table(title="Director Styles")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Keywords")
    for d in DIRECTORS:
        table.add_row(d.id.value, d.name, d.description, ", ".join(d.keywords))
    console.print(table)


@cli.command('init-config')
@click.argument('path', type=click.Path(dir_okay=False), default='config.yaml')
@click.pass_context
def init_config(ctx: click.Context, path: str):
    """Write a default configuration file."""
    AppConfig().to_yaml(Path(path))
    ctx.obj['logger'].success(f"Default config written to {path}")


@cli.command()
@click.pass_context
def unlock(ctx: click.Context):
    """Enter the access code for this workspace."""
    gate: AccessGate = ctx.obj['gate']
    if gate.is_unlocked():
        click.echo("Workspace is already unlocked.")
        return
    attempt = click.prompt("Access code", hide_input=True)
    if not gate.unlock(attempt):
        raise click.ClickException("Access denied. Incorrect access code.")
    click.echo("Workspace unlocked.")


@cli.command()
@click.pass_context
def lock(ctx: click.Context):
    """Forget the remembered access code."""
    ctx.obj['gate'].lock()
    click.echo("Workspace locked.")


@cli.command()
@click.option('--style', 'style_id', default=None, help='Director style ID (see `directors`)')
@click.option('--corpus', type=click.Path(exists=True, dir_okay=False), help='Screenplay corpus text file')
@session_option
@click.pass_context
def style(ctx: click.Context, style_id: str, corpus: str, session_path: str):
    """Learn the Style DNA of a director or a pasted corpus."""
    controller = _open_controller(ctx, session_path)
    if controller.stage is GenerationStage.STYLE_CONFIRMED:
        controller.relearn_style()
    elif controller.stage is not GenerationStage.STYLE_INPUT:
        raise click.ClickException("Session is past the style phase. Run `script-remixer reset` first.")

    try:
        if style_id:
            controller.select_style(style_id)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="--style")
    if corpus:
        controller.set_corpus(_read_text(corpus))

    ctx.obj['logger'].info(f"Extracting Style DNA for {controller.state.selected_style}...")
    asyncio.run(controller.extract_style())
    _raise_on_error(controller, session_path)
    _save(controller, session_path)

    console.print(Markdown(controller.state.style_dna))


@cli.command()
@click.option('--outline', type=click.Path(exists=True, dir_okay=False), help='Story outline text file')
@click.option('--character', 'characters', multiple=True, help='"name|archetype|description" (repeatable)')
@click.option('--entropy', type=float, default=None, help='Sampling temperature, 0.2-1.5')
@session_option
@click.pass_context
def blueprint(ctx: click.Context, outline: str, characters: tuple, entropy: float, session_path: str):
    """Map the outline onto the learned style and plan the scenes."""
    controller = _open_controller(ctx, session_path)
    _enter_blueprint_input(controller)

    if outline:
        controller.set_outline(_read_text(outline))
    if characters:
        _replace_characters(controller, characters)
    try:
        if entropy is not None:
            controller.set_entropy(entropy)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="--entropy")

    ctx.obj['logger'].info("Creating blueprint...")
    asyncio.run(controller.create_blueprint())
    _raise_on_error(controller, session_path)
    _save(controller, session_path)

    console.print(Markdown(controller.state.feasibility_report))
    console.print(_chapter_table(controller))


@cli.command()
@click.option('--chapter', '-n', type=int, default=None, help='Write a single scene')
@click.option('--all', 'write_all', is_flag=True, help='Write every pending or failed scene (default)')
@session_option
@click.pass_context
def write(ctx: click.Context, chapter: int, write_all: bool, session_path: str):
    """Write scenes, approving the blueprint first if needed."""
    if chapter is not None and write_all:
        raise click.UsageError("Use either --chapter or --all, not both.")

    controller = _open_controller(ctx, session_path)
    _enter_production(controller, session_path)
    logger = ctx.obj['logger']

    if chapter is not None:
        if controller.state.find_chapter(chapter) is not None:
            controller.select_chapter(chapter)
        asyncio.run(controller.write_chapter(chapter))
        _raise_on_error(controller, session_path)
        logger.success(f"Scene {chapter} written")
    else:
        completed = _run_batch(controller)
        failed = [c.id for c in controller.state.chapters if c.status is ChapterStatus.ERROR]
        if failed:
            logger.warning(f"Scenes {failed} failed; run `write --all` again to retry them")
        logger.success(f"Wrote {completed} scenes")

    _save(controller, session_path)
    console.print(_chapter_table(controller))


@cli.command()
@click.option('--chapter', '-n', type=int, required=True, help='Scene to rewrite')
@click.option('--note', required=True, help="Director's note for the rewrite")
@session_option
@click.pass_context
def refine(ctx: click.Context, chapter: int, note: str, session_path: str):
    """Rewrite a scene according to a director's note."""
    if not note.strip():
        raise click.BadParameter("The note must not be blank.", param_hint="--note")
    controller = _open_controller(ctx, session_path)
    try:
        asyncio.run(controller.refine_chapter(chapter, note))
    except StageTransitionError as e:
        raise click.ClickException(str(e))
    _raise_on_error(controller, session_path)
    _save(controller, session_path)
    ctx.obj['logger'].success(f"Scene {chapter} refined")


@cli.command()
@click.option('--chapter', '-n', type=int, required=True, help='Scene to replace')
@click.option('--file', 'content_file', type=click.Path(exists=True, dir_okay=False), required=True,
              help='File holding the edited scene text')
@session_option
@click.pass_context
def edit(ctx: click.Context, chapter: int, content_file: str, session_path: str):
    """Replace a scene's text with a hand-edited version."""
    controller = _open_controller(ctx, session_path, needs_backend=False)
    try:
        controller.edit_chapter(chapter, _read_text(content_file))
    except (StageTransitionError, ValidationError) as e:
        raise click.ClickException(str(e))
    _save(controller, session_path)
    ctx.obj['logger'].success(f"Scene {chapter} updated")


@cli.command()
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None, help='Output text file')
@session_option
@click.pass_context
def export(ctx: click.Context, output: str, session_path: str):
    """Export the whole script as one text file."""
    controller = _open_controller(ctx, session_path, needs_backend=False)
    if not controller.state.chapters:
        raise click.ClickException("Nothing to export yet.")
    path = Path(output) if output else Path(controller.export_filename())
    write_script(path, controller.state.chapters)
    click.echo(str(path))


@cli.command()
@click.option('--bible', is_flag=True, help='Also show the style DNA, strategy and characters')
@click.option('--clear-error', is_flag=True, help='Dismiss the last error after showing it')
@session_option
@click.pass_context
def status(ctx: click.Context, bible: bool, clear_error: bool, session_path: str):
    """Show the current stage and scene statuses."""
    controller = _open_controller(ctx, session_path, needs_backend=False)
    state = controller.state
    console.print(f"Stage: [bold]{state.stage.value}[/bold] ({state.stage.phase.value})")
    console.print(f"Style: {state.selected_style}   Entropy: {state.entropy}")
    if state.chapters:
        console.print(_chapter_table(controller))
    if bible:
        console.print(Markdown(controller.story_bible().to_markdown()))
    if state.error:
        console.print(f"[red]Last error:[/red] {state.error}")
        if clear_error:
            controller.dismiss_error()
            _save(controller, session_path)


@cli.command()
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@session_option
@click.pass_context
def reset(ctx: click.Context, yes: bool, session_path: str):
    """Start over: drop the style, blueprint and scenes (inputs are kept)."""
    if not yes:
        click.confirm("Reset the session? All scenes will be lost.", abort=True)
    controller = _open_controller(ctx, session_path, needs_backend=False)
    controller.reset()
    _save(controller, session_path)
    ctx.obj['logger'].info("Session reset")


@cli.command()
@click.option('--style', 'style_id', required=True, help='Director style ID')
@click.option('--corpus', type=click.Path(exists=True, dir_okay=False), help='Screenplay corpus text file')
@click.option('--outline', type=click.Path(exists=True, dir_okay=False), required=True, help='Story outline text file')
@click.option('--character', 'characters', multiple=True, help='"name|archetype|description" (repeatable)')
@click.option('--entropy', type=float, default=None, help='Sampling temperature, 0.2-1.5')
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None, help='Output text file')
@click.option('--yes', is_flag=True, help='Approve the style and blueprint without asking')
@session_option
@click.pass_context
def run(ctx: click.Context, style_id: str, corpus: str, outline: str, characters: tuple,
        entropy: float, output: str, yes: bool, session_path: str):
    """Run the whole pipeline: style, blueprint, every scene, export."""
    # Only the inputs given here count; nothing carries over from an earlier session.
    config: AppConfig = ctx.obj['config']
    save_session(ScriptState(entropy=config.generation.entropy), Path(session_path))
    ctx.invoke(style, style_id=style_id, corpus=corpus, session_path=session_path)
    if not yes:
        click.confirm("Use this Style DNA?", abort=True)

    ctx.invoke(blueprint, outline=outline, characters=characters, entropy=entropy,
               session_path=session_path)
    if not yes:
        click.confirm("Approve this blueprint and start production?", abort=True)

    ctx.invoke(write, chapter=None, write_all=True, session_path=session_path)
    ctx.invoke(export, output=output, session_path=session_path)
    ctx.obj['logger'].success("Pipeline completed")


def main():
    cli()


if __name__ == '__main__':
    main()
