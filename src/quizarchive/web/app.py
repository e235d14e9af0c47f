"""FastAPI application backing the QuizArchive web UI."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from quizarchive.catalog.requests import REQUEST_CREATED, UPVOTE_RECORDED, RequestBoard
from quizarchive.catalog.tags import TagResolver
from quizarchive.catalog.uploads import ExamCatalog, ExamUploader
from quizarchive.config import AppConfig
from quizarchive.errors import GENERIC_ERROR, NotFoundError, StoreError, ValidationError
from quizarchive.models import FilterSpec
from quizarchive.query.pages import ResultPageAssembler
from quizarchive.store.blobs import LocalBlobStorage
from quizarchive.store.storage import SQLiteStore

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="QuizArchive Web", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    school: str = ""
    subject: str = ""
    course_code: Optional[str] = None
    professor: Optional[str] = None
    year: Optional[str] = None


def _config() -> AppConfig:
    return AppConfig.from_env()


def _resolve_db_path(db: Path | None) -> Path:
    config = AppConfig(db_path=db if db is not None else _config().db_path)
    return config.resolve_db_path(Path.cwd())


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


async def get_store() -> AsyncIterator[SQLiteStore]:
    resolved_db = _resolve_db_path(None)
    _ensure_db_parent(resolved_db)
    store = SQLiteStore(resolved_db)
    try:
        yield store
    finally:
        store.close()


def get_blobs() -> LocalBlobStorage:
    config = _config()
    return LocalBlobStorage(config.resolve_storage_dir(Path.cwd()), base_url=config.files_url)


def _notices(notices) -> List[dict[str, str]]:
    return [{"level": n.level, "message": n.message} for n in notices]


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": "Invalid input", "errors": exc.errors})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Not found"})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    LOGGER.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": GENERIC_ERROR})


@app.get("/api/exams")
async def browse_exams(
    school: Optional[str] = None,
    subject: Optional[str] = None,
    course_code: Optional[str] = Query(None, alias="courseCode"),
    professor: Optional[str] = None,
    year_start: Optional[str] = Query(None, alias="yearStart"),
    year_end: Optional[str] = Query(None, alias="yearEnd"),
    page_number: Optional[str] = Query(None, alias="pageNumber"),
    sorting: Optional[str] = None,
    store: SQLiteStore = Depends(get_store),
) -> dict[str, Any]:
    """Browse results, newest first unless ``sorting=oldest``."""
    spec = FilterSpec.from_params(
        {
            "school": school,
            "subject": subject,
            "course_code": course_code,
            "professor": professor,
            "year_start": year_start,
            "year_end": year_end,
            "page_number": page_number,
            "sorting": sorting,
        }
    )
    assembler = ResultPageAssembler(store, page_limit=_config().page_limit)
    return assembler.exam_page(spec).to_dict()


@app.get("/api/exams/{exam_id}")
async def exam_detail(exam_id: int, store: SQLiteStore = Depends(get_store)) -> dict[str, Any]:
    detail = ExamCatalog(store, TagResolver(store)).get(exam_id)
    return {
        "exam": asdict(detail.exam),
        "tags": [asdict(tag) for tag in detail.tags],
        "notices": _notices(detail.notices),
    }


@app.get("/api/exams/{exam_id}/tags")
async def exam_tags(exam_id: int, store: SQLiteStore = Depends(get_store)) -> dict[str, Any]:
    lookup = TagResolver(store).tags_for(exam_id)
    return {"tags": [asdict(tag) for tag in lookup.tags], "notices": _notices(lookup.notices)}


@app.post("/api/exams", status_code=201)
async def upload_exam(
    school: str = Form(""),
    subject: str = Form(""),
    title: str = Form(""),
    professor: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    semester: Optional[str] = Form(None),
    course_code: Optional[str] = Form(None, alias="courseCode"),
    description: Optional[str] = Form(None),
    assessment_type: Optional[str] = Form(None, alias="assessmentType"),
    tags: List[str] = Form([]),
    file: Optional[UploadFile] = File(None),
    store: SQLiteStore = Depends(get_store),
    blobs: LocalBlobStorage = Depends(get_blobs),
) -> dict[str, Any]:
    content = await file.read() if file is not None else None
    uploader = ExamUploader(store, blobs, TagResolver(store))
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
        content,
        file.content_type if file is not None else None,
    )
    return {"exam": asdict(result.exam), "notices": _notices(result.notices)}


@app.get("/api/requests")
async def browse_requests(
    school: Optional[str] = None,
    subject: Optional[str] = None,
    course_code: Optional[str] = Query(None, alias="courseCode"),
    professor: Optional[str] = None,
    year: Optional[str] = None,
    page_number: Optional[str] = Query(None, alias="pageNumber"),
    sorting: Optional[str] = None,
    store: SQLiteStore = Depends(get_store),
) -> dict[str, Any]:
    """Request listing; ``year`` matches one year either side."""
    spec = FilterSpec.from_params(
        {
            "school": school,
            "subject": subject,
            "course_code": course_code,
            "professor": professor,
            "year": year,
            "page_number": page_number,
            "sorting": sorting,
        }
    )
    config = _config()
    assembler = ResultPageAssembler(
        store, page_limit=config.page_limit, year_epoch=config.year_epoch
    )
    return assembler.request_page(spec).to_dict()


@app.post("/api/requests", status_code=201)
async def create_request(
    payload: RequestPayload, store: SQLiteStore = Depends(get_store)
) -> dict[str, Any]:
    record = RequestBoard(store).create(payload.model_dump())
    return {
        "request": asdict(record),
        "notices": [{"level": "success", "message": REQUEST_CREATED}],
    }


@app.post("/api/requests/{request_id}/upvote")
async def upvote_request(request_id: int, store: SQLiteStore = Depends(get_store)) -> dict[str, Any]:
    result = RequestBoard(store).upvote(request_id)
    return {
        "id": result.request_id,
        "upvotes": result.upvotes,
        "notices": [{"level": "success", "message": UPVOTE_RECORDED}],
    }


@app.get("/files/{bucket}/{path:path}")
async def stored_file(
    bucket: str, path: str, blobs: LocalBlobStorage = Depends(get_blobs)
) -> FileResponse:
    return FileResponse(blobs.locate(bucket, path))
