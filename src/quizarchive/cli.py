"""Command line interface for QuizArchive."""

from __future__ import annotations

import logging
import mimetypes
import os
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from quizarchive.catalog.requests import UPVOTE_FAILED, RequestBoard
from quizarchive.catalog.tags import TagResolver
from quizarchive.catalog.uploads import ExamCatalog, ExamUploader
from quizarchive.config import DB_ENV_VAR, STORAGE_ENV_VAR, AppConfig
from quizarchive.errors import GENERIC_ERROR, NotFoundError, StoreError, ValidationError
from quizarchive.models import FilterSpec, Notice
from quizarchive.query.pages import ResultPageAssembler
from quizarchive.store.blobs import LocalBlobStorage
from quizarchive.store.storage import SQLiteStore
from quizarchive.web.app import app as web_app


console = Console()
app = typer.Typer(help="QuizArchive - crowdsourced past quizzes and exams")

_NOTICE_STYLES = {"success": "green", "warning": "yellow", "error": "red"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _open_store(db: Optional[Path]) -> tuple[AppConfig, SQLiteStore]:
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)
    return config, SQLiteStore(resolved_db)


def _print_notices(notices: List[Notice]) -> None:
    for notice in notices:
        style = _NOTICE_STYLES.get(notice.level, "white")
        console.print(f"[{style}]{notice.message}[/{style}]")


def _print_validation(exc: ValidationError) -> None:
    for field, message in exc.errors.items():
        console.print(f"[red]{field}: {message}[/red]")


@app.command()
def browse(
    school: Optional[str] = typer.Option(None, help="School name contains"),
    subject: Optional[str] = typer.Option(None, help="Subject contains"),
    course_code: Optional[str] = typer.Option(None, "--course-code", help="Course code contains"),
    professor: Optional[str] = typer.Option(None, help="Professor contains"),
    year_start: Optional[int] = typer.Option(None, "--year-start", help="Earliest year"),
    year_end: Optional[int] = typer.Option(None, "--year-end", help="Latest year"),
    page: int = typer.Option(1, "--page", help="Page number (1-based)"),
    sorting: str = typer.Option("newest", help="newest or oldest"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List uploaded quizzes and exams matching the filters."""
    _setup_logging(verbose)
    config, store = _open_store(db)
    spec = FilterSpec(
        school=school,
        subject=subject,
        course_code=course_code,
        professor=professor,
        year_start=year_start,
        year_end=year_end,
        page_number=page,
        sorting=sorting,
    )
    try:
        result = ResultPageAssembler(store, page_limit=config.page_limit).exam_page(spec)
    finally:
        store.close()

    _print_notices(result.notices)
    if not result.items:
        console.print("[yellow]No results found. Try adjusting your filters.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    for column in ("ID", "Title", "School", "Subject", "Course", "Professor", "Year", "Type"):
        table.add_column(column)
    for exam in result.items:
        table.add_row(
            str(exam.id),
            exam.title,
            exam.school,
            exam.subject,
            exam.course_code,
            exam.professor,
            str(exam.year or ""),
            exam.assessment_type,
        )
    console.print(table)
    console.print(
        f"Page {result.page_number}" + (" (more results on the next page)" if result.has_next_page else "")
    )


@app.command()
def requests(
    school: Optional[str] = typer.Option(None, help="School name contains"),
    subject: Optional[str] = typer.Option(None, help="Subject contains"),
    course_code: Optional[str] = typer.Option(None, "--course-code", help="Course code contains"),
    professor: Optional[str] = typer.Option(None, help="Professor contains"),
    year: Optional[int] = typer.Option(None, help="Year, matched one year either side"),
    page: int = typer.Option(1, "--page", help="Page number (1-based)"),
    sorting: str = typer.Option("newest", help="newest, oldest or upvotes"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List exam requests from the community."""
    _setup_logging(verbose)
    config, store = _open_store(db)
    spec = FilterSpec(
        school=school,
        subject=subject,
        course_code=course_code,
        professor=professor,
        year=year,
        page_number=page,
        sorting=sorting,
    )
    try:
        assembler = ResultPageAssembler(
            store, page_limit=config.page_limit, year_epoch=config.year_epoch
        )
        result = assembler.request_page(spec)
    finally:
        store.close()

    _print_notices(result.notices)
    if not result.items:
        console.print("[yellow]No requests found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    for column in ("ID", "Title", "School", "Course", "Professor", "Year", "Upvotes", "Requested"):
        table.add_column(column)
    for item in result.items:
        table.add_row(
            str(item.id),
            item.title,
            item.school,
            item.course_code or "",
            item.professor or "",
            str(item.year or ""),
            str(item.upvotes),
            item.created_at[:10],
        )
    console.print(table)


@app.command()
def show(
    exam_id: int = typer.Argument(..., help="Exam identifier"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Show one exam with its tags."""
    _, store = _open_store(db)
    try:
        detail = ExamCatalog(store, TagResolver(store)).get(exam_id)
    except NotFoundError:
        console.print(f"[red]Exam {exam_id} not found.[/red]")
        raise typer.Exit(code=1)
    except StoreError:
        console.print(f"[red]{GENERIC_ERROR}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()

    exam = detail.exam
    console.print(f"[bold]{exam.title}[/bold]")
    console.print(f"{exam.school} - {exam.subject} ({exam.course_code})")
    console.print(f"Professor: {exam.professor}  Year: {exam.year or 'N/A'}  Semester: {exam.semester}")
    console.print(f"Type: {exam.assessment_type}")
    console.print(f"File: {exam.file_link}")
    console.print(f"Description: {exam.description}")
    if detail.tags:
        console.print("Tags: " + ", ".join(tag.name for tag in detail.tags))
    _print_notices(detail.notices)


@app.command()
def upload(
    file: Path = typer.Argument(..., help="Quiz file (PDF, PNG or JPEG)", exists=True, dir_okay=False),
    school: str = typer.Option(..., help="School"),
    subject: str = typer.Option(..., help="Subject"),
    title: str = typer.Option(..., help="Title"),
    professor: Optional[str] = typer.Option(None, help="Professor"),
    year: Optional[int] = typer.Option(None, help="Year"),
    semester: Optional[str] = typer.Option(None, help="Semester"),
    course_code: Optional[str] = typer.Option(None, "--course-code", help="Course code"),
    description: Optional[str] = typer.Option(None, help="Description"),
    assessment_type: Optional[str] = typer.Option(None, "--type", help="Quiz, Midterm, Final, ..."),
    tags: List[str] = typer.Option([], "--tag", help="Tag label (repeatable)"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Upload a quiz or exam file."""
    _setup_logging(verbose)
    config, store = _open_store(db)
    blobs = LocalBlobStorage(config.resolve_storage_dir(Path.cwd()), base_url=config.files_url)
    content_type, _ = mimetypes.guess_type(file.name)
    uploader = ExamUploader(store, blobs, TagResolver(store))
    try:
        result = uploader.upload(
            {
                "school": school,
                "subject": subject,
                "title": title,
                "professor": professor,
                "year": year,
                "semester": semester,
                "course_code": course_code,
                "description": description,
                "assessment_type": assessment_type,
                "tags": tags,
            },
            file.read_bytes(),
            content_type,
        )
    except ValidationError as exc:
        _print_validation(exc)
        raise typer.Exit(code=1)
    except StoreError:
        console.print(f"[red]{GENERIC_ERROR}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()

    _print_notices(result.notices)
    console.print(f"Exam [bold]{result.exam.id}[/bold] available at {result.exam.file_link}")


@app.command()
def request(
    title: str = typer.Option(..., help="What you are looking for"),
    school: str = typer.Option(..., help="School"),
    subject: str = typer.Option(..., help="Subject"),
    course_code: Optional[str] = typer.Option(None, "--course-code", help="Course code"),
    professor: Optional[str] = typer.Option(None, help="Professor"),
    year: Optional[int] = typer.Option(None, help="Year"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Ask the community for a quiz or exam."""
    _, store = _open_store(db)
    try:
        record = RequestBoard(store).create(
            {
                "title": title,
                "school": school,
                "subject": subject,
                "course_code": course_code,
                "professor": professor,
                "year": year,
            }
        )
    except ValidationError as exc:
        _print_validation(exc)
        raise typer.Exit(code=1)
    except StoreError:
        console.print(f"[red]{GENERIC_ERROR}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"[green]New quiz request created successfully.[/green] (id {record.id})")


@app.command()
def upvote(
    request_id: int = typer.Argument(..., help="Request identifier"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Upvote a request."""
    _, store = _open_store(db)
    try:
        result = RequestBoard(store).upvote(request_id)
    except NotFoundError:
        console.print(f"[red]Request {request_id} not found.[/red]")
        raise typer.Exit(code=1)
    except StoreError:
        console.print(f"[red]{UPVOTE_FAILED}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"Request {result.request_id} now has {result.upvotes} upvotes.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    storage: Path = typer.Option(None, "--storage", help="Directory for uploaded files"),
) -> None:
    """Start the web interface."""
    import uvicorn

    config = AppConfig(
        db_path=db if db is not None else AppConfig().db_path,
        storage_dir=storage,
    )
    resolved_db = config.resolve_db_path(Path.cwd())
    os.environ[DB_ENV_VAR] = str(resolved_db)
    os.environ[STORAGE_ENV_VAR] = str(config.resolve_storage_dir(Path.cwd()))

    console.print(
        f"Starting web interface on http://{host}:{port} (database: {resolved_db})"
    )
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
