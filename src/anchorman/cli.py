"""Command-line interface for Anchorman."""

import os
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from anchorman.errors import AnchormanError, WorkingCopyError
from anchorman.extraction import GitExtractor
from anchorman.hooks import HookInstaller
from anchorman.llm import TaskDerivationPipeline, create_agent
from anchorman.logsetup import ErrorLog, configure_logging
from anchorman.models import Settings
from anchorman.models.config import default_home
from anchorman.pipeline import CommitImporter, CommitIngestor, ImportOptions
from anchorman.storage import (
    CommitRepository,
    CompanyRepository,
    Database,
    DatabaseConfig,
    ProjectRepository,
    RepoRepository,
)

app = typer.Typer(
    name="anchorman",
    help="Anchorman - record git commits and turn them into time-tracked tasks",
    add_completion=False,
)
hooks_app = typer.Typer(help="Manage the global git hooks")
project_app = typer.Typer(help="Manage projects")
repo_app = typer.Typer(help="Manage tracked repositories")
app.add_typer(hooks_app, name="hooks")
app.add_typer(project_app, name="project")
app.add_typer(repo_app, name="repo")

console = Console()


def open_database(settings: Settings):
    settings.ensure_directories()
    return Database.open(DatabaseConfig.from_settings(settings))


def parse_import_target(value: Optional[str]) -> Tuple[Optional[int], Optional[date]]:
    """Interpret the import positional as a commit count or a YYYY-MM-DD date.

    Returns:
        (count, since); both None when no value was given

    Raises:
        typer.BadParameter: If the value is neither
    """
    if value is None:
        return None, None
    try:
        count = int(value)
    except ValueError:
        pass
    else:
        if count < 0:
            raise typer.BadParameter("commit count must not be negative")
        return count, None
    try:
        return None, date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(
            f"expected a commit count or a date (YYYY-MM-DD), got {value!r}"
        ) from None


def resolve_process_range(
    since: Optional[str],
    until: Optional[str],
    days: Optional[int],
    today: Optional[date] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Turn --since/--until/--days into an inclusive local-time range.

    Dates cover whole local days. No option at all means no range.
    """
    if days is not None and since is not None:
        raise typer.BadParameter("--days and --since are mutually exclusive")
    if days is not None and days < 0:
        raise typer.BadParameter("--days must not be negative")
    if since is None and until is None and days is None:
        return None, None

    today = today or date.today()
    try:
        start_day = date.fromisoformat(since) if since else None
        end_day = date.fromisoformat(until) if until else today
    except ValueError as e:
        raise typer.BadParameter(f"invalid date: {e}") from None

    if days is not None:
        start_day = today - timedelta(days=days)

    start = (
        datetime.combine(start_day, time.min).astimezone()
        if start_day
        else datetime(1970, 1, 1).astimezone()
    )
    end = datetime.combine(end_day, time.max).astimezone()
    if start > end:
        raise typer.BadParameter("range start is after its end")
    return start, end


@app.command(hidden=True)
def ingest(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Record the current HEAD commit (run by the git hooks)."""
    # Until settings load, failures go to the default home's log.
    error_log = ErrorLog(default_home() / "errors.log")
    try:
        configure_logging(verbose)
        settings = Settings()
        error_log = ErrorLog(settings.error_log_path)
        with open_database(settings) as database:
            result = CommitIngestor(database, settings).ingest()
    except Exception as e:
        error_log.record(e, cwd=os.getcwd())
        if verbose:
            console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if verbose:
        if result.skipped:
            console.print(f"[yellow]Skipped:[/yellow] {result.skip_reason}")
        else:
            console.print(
                f"[bold green]✓[/bold green] Recorded [cyan]{result.short_hash}[/cyan] "
                f"{result.message}"
            )


@hooks_app.command("install")
def hooks_install() -> None:
    """Install the post-commit and post-merge hooks globally."""
    configure_logging()
    settings = Settings()
    try:
        report = HookInstaller(settings.hooks_dir, settings.hook_state_path).install()
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    for name in report.migrated:
        console.print(f"  [dim]Migrated {name} from {report.previous_hooks_path}[/dim]")
    for name in report.backed_up:
        console.print(f"  [dim]Existing {name} kept as {name}.legacy[/dim]")
    console.print(f"[bold green]✓[/bold green] Hooks installed in {report.hooks_dir}")
    console.print("[bold blue]Tracking repositories under:[/bold blue]")
    for path in settings.scan_paths:
        console.print(f"  • {path}")


@hooks_app.command("uninstall")
def hooks_uninstall() -> None:
    """Remove the hooks and restore the previous git configuration."""
    configure_logging()
    settings = Settings()
    try:
        report = HookInstaller(settings.hooks_dir, settings.hook_state_path).uninstall()
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    for name in report.restored:
        console.print(f"  [dim]Restored original {name}[/dim]")
    if report.hooks_path_restored:
        console.print(f"  [dim]core.hooksPath restored to {report.hooks_path_restored}[/dim]")
    elif report.hooks_path_cleared:
        console.print("  [dim]core.hooksPath cleared[/dim]")
    console.print(f"[bold green]✓[/bold green] Removed {len(report.removed)} hook(s)")


@hooks_app.command("status")
def hooks_status() -> None:
    """Show whether the hooks are installed."""
    configure_logging()
    settings = Settings()
    installer = HookInstaller(settings.hooks_dir, settings.hook_state_path)
    try:
        configured = installer.configured_hooks_path()
        states = installer.status()
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[cyan]Hooks directory:[/cyan] {settings.hooks_dir}")
    console.print(f"[cyan]core.hooksPath:[/cyan] {configured or '(unset)'}")
    for name, state in states.items():
        colour = "green" if state != "uninstalled" else "yellow"
        console.print(f"  {name}: [{colour}]{state}[/{colour}]")


@app.command("import")
def import_commits(
    target: Optional[str] = typer.Argument(
        None, metavar="[COUNT|YYYY-MM-DD]", help="Most recent N commits, or commits since a date"
    ),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Branch to import from"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Re-import stored commits and drop their derived tasks"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Import existing commits of the current repository."""
    configure_logging(verbose)
    count, since = parse_import_target(target)
    settings = Settings()
    try:
        options = ImportOptions(count=count, since=since, branch=branch, force=force)
        with open_database(settings) as database:
            result = CommitImporter(database, settings).run(options)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]Repository:[/bold green] {result.repo_path}")
    console.print(f"  Found:    {result.total_found}")
    console.print(f"  Imported: {result.imported}")
    console.print(f"  Skipped:  {result.skipped}")
    if force:
        console.print(f"  Updated:  {result.updated}")
        console.print(f"  Tasks invalidated: {result.tasks_deleted}")
    if result.is_orphan:
        console.print(
            "[yellow]This repository has no project yet; its commits will not be "
            "processed until one is assigned (anchorman repo assign).[/yellow]"
        )
    if result.not_in_scan_path:
        console.print(
            "[yellow]This repository is outside the configured scan paths; "
            "the git hooks will not record new commits here.[/yellow]"
        )


@app.command()
def process(
    since: Optional[str] = typer.Option(None, "--since", help="First day (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--until", help="Last day (YYYY-MM-DD)"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Last N days up to today"),
    agent_name: Optional[str] = typer.Option(None, "--agent", "-a", help="codex or claude"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the groups without calling the agent"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Turn unprocessed commits into tasks with a summarization agent."""
    configure_logging(verbose)
    start, end = resolve_process_range(since, until, days)
    settings = Settings()

    try:
        agent = create_agent(agent_name or settings.default_agent, timeout=settings.agent_timeout)
        with open_database(settings) as database:
            pipeline = TaskDerivationPipeline(database, agent)
            if dry_run:
                groups = pipeline.preview(start, end)
                table = Table(title="Commits to process")
                table.add_column("Project", style="cyan")
                table.add_column("Commits", justify="right")
                table.add_column("Task date")
                for group in groups:
                    table.add_row(
                        group.project_name,
                        str(len(group.commits)),
                        group.task_date.astimezone().strftime("%Y-%m-%d %H:%M"),
                    )
                console.print(table)
                return

            with console.status(f"Processing with {agent.name}..."):
                result = pipeline.run(start, end)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Processing summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Commits selected", str(result.commits_selected))
    table.add_row("Skipped (no project)", str(result.orphans_skipped))
    table.add_row("Projects processed", str(result.groups_processed))
    table.add_row("Tasks created", str(result.tasks_created))
    console.print(table)

    if result.failures:
        for failure in result.failures:
            console.print(f"[bold red]Failed:[/bold red] {failure.project_name}: {failure.error}")
        raise typer.Exit(1)


@app.command()
def status() -> None:
    """Show tracked repositories and processing state."""
    configure_logging()
    settings = Settings()
    try:
        with open_database(settings) as database:
            with database.session_scope() as session:
                repos = RepoRepository(session).get_all_with_stats()
                commit_repo = CommitRepository(session)
                unprocessed = commit_repo.count_unprocessed()
                last_processed = commit_repo.get_last_processed_time()

                table = Table(title="Repositories")
                table.add_column("Path", style="cyan")
                table.add_column("Project")
                table.add_column("Company")
                table.add_column("Commits", justify="right")
                table.add_column("Unprocessed", justify="right")
                for entry in repos:
                    project = entry.repo.project
                    table.add_row(
                        entry.repo.path,
                        project.name if project else "[yellow]orphan[/yellow]",
                        project.company.name if project and project.company else "-",
                        str(entry.commit_count),
                        str(entry.unprocessed_commit_count),
                    )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(table)
    console.print(f"[bold]Unprocessed commits:[/bold] {unprocessed}")
    if last_processed:
        console.print(
            f"[bold]Last processed:[/bold] {last_processed.astimezone():%Y-%m-%d %H:%M}"
        )
    else:
        console.print("[bold]Last processed:[/bold] never")


@project_app.command("add")
def project_add(
    name: str = typer.Argument(..., help="Project name"),
    company: Optional[str] = typer.Option(None, "--company", "-c", help="Owning company"),
) -> None:
    """Create a project, optionally under a company (created if missing)."""
    configure_logging()
    settings = Settings()
    try:
        with open_database(settings) as database:
            with database.session_scope() as session:
                company_id = None
                if company:
                    companies = CompanyRepository(session)
                    owner = companies.get_by_name(company) or companies.create(company)
                    company_id = owner.id
                project = ProjectRepository(session).create(name, company_id)
                project_id = project.id
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓[/bold green] Created project {name} (id {project_id})")


@project_app.command("list")
def project_list() -> None:
    """List projects with their repository and task counts."""
    configure_logging()
    settings = Settings()
    try:
        with open_database(settings) as database:
            with database.session_scope() as session:
                table = Table(title="Projects")
                table.add_column("ID", justify="right")
                table.add_column("Name", style="cyan")
                table.add_column("Company")
                table.add_column("Repos", justify="right")
                table.add_column("Tasks", justify="right")
                table.add_column("Commits", justify="right")
                for entry in ProjectRepository(session).get_all_with_stats():
                    project = entry.project
                    table.add_row(
                        str(project.id),
                        project.name,
                        project.company.name if project.company else "[yellow]none[/yellow]",
                        str(entry.repo_count),
                        str(entry.task_count),
                        str(entry.commit_count),
                    )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(table)


@repo_app.command("assign")
def repo_assign(
    path: Path = typer.Argument(..., help="Path inside the repository"),
    project_id: int = typer.Argument(..., help="Project ID (see anchorman project list)"),
) -> None:
    """Attach a tracked repository to a project."""
    configure_logging()
    settings = Settings()
    try:
        try:
            repo_path = str(GitExtractor(path).repo_root)
        except WorkingCopyError:
            repo_path = str(path.expanduser().absolute())

        with open_database(settings) as database:
            with database.session_scope() as session:
                repo = RepoRepository(session).get_by_path(repo_path)
                if repo is None:
                    raise AnchormanError(
                        f"Repository not tracked yet: {repo_path} (run anchorman import there)"
                    )
                project = ProjectRepository(session).get_by_id(project_id)
                if project is None:
                    raise AnchormanError(f"No project with id {project_id}")
                RepoRepository(session).set_project(repo.id, project.id)
                project_name = project.name
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓[/bold green] {repo_path} assigned to {project_name}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
