"""CLI module for Busy - typer app and all commands."""

from contextlib import contextmanager
from datetime import timedelta
from typing import Generator, List, Optional

import typer
from typing_extensions import Annotated

from busy_core import tasks
from busy_core.constants import KIND_TASK
from busy_core.exceptions import BusyError, MergeConflictError, PushFailedError
from busy_core.logging_setup import setup_logging
from busy_core.models import Task
from busy_core.storage import get_lock_path, open_store, save_store
from busy_core.store import Store
from busy_core.sync import SyncEngine
from busy_core.transport import get_transport
from busy_core.utils import file_lock, parse_datetime

__all__ = ["app", "main"]

# Create Typer app
app = typer.Typer(help="Busy - personal time tracker with local-first sync")


@contextmanager
def _session(save: bool = True) -> Generator[Store, None, None]:
    """Load the store under the lock, save it when the command succeeds.

    Any core error becomes "Error: ..." and exit code 1.
    """
    try:
        with file_lock(get_lock_path()):
            store = open_store()
            yield store
            if save:
                save_store(store)
    except BusyError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)


def _format_duration(value: timedelta) -> str:
    minutes = int(value.total_seconds()) // 60
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


def _format_task(store: Store, task: Task) -> str:
    project = store.project_by_id(task.project_id)
    tag_names = sorted(store.tag_by_id(tag_id).name for tag_id in task.tag_ids)
    tags = "".join(f" +{name}" for name in tag_names)
    start = task.interval.start.strftime("%Y-%m-%d %H:%M")
    stop = task.interval.stop.strftime("%H:%M") if task.interval.stop else "..."
    return (
        f"{store.short_id(task.id)} [{project.name}] {task.title}{tags} "
        f"{start} - {stop} ({_format_duration(task.duration())}, {task.state})"
    )


def _parse_time(value: str):
    try:
        return parse_datetime(value)
    except BusyError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)


@app.command()
def start(
    project_name: Annotated[str, typer.Argument(help="Project name")],
    task_title: Annotated[str, typer.Argument(help="Task title")],
    tags: Annotated[Optional[List[str]], typer.Argument(help="Tags, e.g. +work")] = None,
    start_time: Annotated[
        Optional[str],
        typer.Option("--start-time", "-s", help="Override start time: HH:MM or YYYY-mm-dd HH:MM"),
    ] = None,
):
    """Start a new task."""
    parsed_start = _parse_time(start_time) if start_time else None

    with _session() as store:
        task = tasks.start(store, project_name, task_title, tags or [], start_time=parsed_start)
        print("Task started:")
        print(f"  {_format_task(store, task)}")


@app.command()
def stop():
    """Stop the current task."""
    with _session() as store:
        task = tasks.stop(store)
        print("Task stopped:")
        print(f"  {_format_task(store, task)}")


@app.command()
def pause():
    """Pause the current task."""
    with _session() as store:
        task = tasks.pause(store)
        print("Task paused:")
        print(f"  {_format_task(store, task)}")


@app.command()
def resume():
    """Resume the paused task."""
    with _session() as store:
        task = tasks.resume(store)
        print("Task resumed:")
        print(f"  {_format_task(store, task)}")


@app.command(name="continue")
def continue_cmd(
    short_task_id: Annotated[str, typer.Argument(help="Task id or unique prefix")],
):
    """Continue a stopped task: start a new one with the same project, title and tags."""
    with _session() as store:
        task_id = store.resolve(short_task_id, KIND_TASK)
        task = tasks.continue_task(store, task_id)
        print("Continue task:")
        print(f"  {_format_task(store, task)}")


@app.command()
def add(
    project_name: Annotated[str, typer.Argument(help="Project name")],
    task_title: Annotated[str, typer.Argument(help="Task title")],
    start_time: Annotated[str, typer.Option("--start", "-s", help="Start time: HH:MM or YYYY-mm-dd HH:MM")],
    finish_time: Annotated[str, typer.Option("--finish", "-f", help="Finish time: HH:MM or YYYY-mm-dd HH:MM")],
    tags: Annotated[Optional[List[str]], typer.Argument(help="Tags, e.g. +work")] = None,
):
    """Add an already finished task."""
    parsed_start = _parse_time(start_time)
    parsed_finish = _parse_time(finish_time)

    with _session() as store:
        task = tasks.add(store, project_name, task_title, tags or [], parsed_start, parsed_finish)
        print("Task added:")
        print(f"  {_format_task(store, task)}")


@app.command()
def remove(
    short_task_id: Annotated[str, typer.Argument(help="Task id or unique prefix")],
):
    """Remove a task."""
    with _session() as store:
        task_id = store.resolve(short_task_id, KIND_TASK)
        line = _format_task(store, store.task_by_id(task_id))
        tasks.remove_task(store, task_id)
        print("Removed task:")
        print(f"  {line}")


app.command(name="rm", hidden=True)(remove)


@app.command()
def status():
    """Show the current task."""
    with _session(save=False) as store:
        task = store.current_task()
        if task is None:
            print("There are no active tasks")
            return
        print("Your active task:")
        print(f"  {_format_task(store, task)}")


@app.command(name="tags")
def tags_cmd():
    """List all tags."""
    with _session(save=False) as store:
        print("Tags:")
        for tag in sorted(store.tags(), key=lambda t: t.name):
            print(f"  {store.short_id(tag.id, 'tag')} {tag.name}")


@app.command()
def projects():
    """List all projects."""
    with _session(save=False) as store:
        print("Projects:")
        for project in sorted(store.projects(), key=lambda p: p.name):
            print(f"  {store.short_id(project.id, 'project')} {project.name}")


@app.command()
def sync(
    push_force: Annotated[bool, typer.Option("--push-force", help="Overwrite remote with local data")] = False,
    pull_force: Annotated[bool, typer.Option("--pull-force", help="Overwrite local data with remote")] = False,
    force: Annotated[bool, typer.Option("--force", help="Allow --pull-force while a task is running")] = False,
):
    """Sync with remote. Set the BUSY_REMOTE environment variable to use it."""
    if push_force and pull_force:
        print("Error: --push-force and --pull-force are mutually exclusive")
        raise typer.Exit(code=1)

    with _session(save=False) as store:
        engine = SyncEngine(store, get_transport())

        if push_force:
            engine.push_force()
            print("Sync push force success!")
        elif pull_force:
            engine.pull_force(force=force)
            print("Sync pull force success!")
        else:
            try:
                result = engine.sync()
            except PushFailedError as e:
                print(f"Error: {e}")
                print("Local data is up to date, run sync again to push")
                raise typer.Exit(code=1)
            except MergeConflictError as e:
                print(f"Error: {e}")
                print("Nothing was changed. Use `busy sync --push-force` or `busy sync --pull-force`")
                raise typer.Exit(code=1)
            print(
                f"Syncing finished: {result.from_remote} remote change(s), "
                f"{result.from_local} local change(s)"
            )


def main():
    """Main CLI entry point."""
    setup_logging()
    app()
