import logging
from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from pydantic import TypeAdapter, ValidationError

from . import rules
from .checks import available_checks
from .document import Document, EmptyInputError
from .models import ChecksResponse, FileResult, FileSummary, HealthResponse, SanitizeResponse
from .normalize import decode_bytes, encode_csv
from .schema import FieldSpec

logger = logging.getLogger(__name__)

_SCHEMA = TypeAdapter(List[FieldSpec])

app = FastAPI(
    title="csvfilter",
    description="Schema-driven CSV sanitization with recovery of merged rows",
    version="0.1.0",
)


def parse_schema(schema: str) -> List[FieldSpec]:
    try:
        specs = _SCHEMA.validate_json(schema)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid schema: {exc}") from exc
    if not specs:
        raise HTTPException(status_code=422, detail="Schema must define at least one field")
    return specs


def sanitize_upload(document: Document, raw: bytes, filename: str) -> FileResult:
    """Load one upload into the (reused) document and export it."""
    text, encoding = decode_bytes(raw)
    logger.debug("%s decoded as %s", filename, encoding["decode_used"])
    document.load_text(text, filename=filename)

    try:
        result = document.export()
    except EmptyInputError as exc:
        return FileResult(source=filename, document_error=str(exc), normalizations={"encoding": encoding})

    return FileResult(
        source=filename,
        summary=FileSummary(**document.summary()),
        normalizations={"encoding": encoding},
        sanitized_csv=encode_csv(result.sanitized_text, document.output_filename),
        error_csv=encode_csv(result.error_text, document.error_filename) if result.error_text else None,
        errors=result.errors,
    )


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/checks", response_model=ChecksResponse)
def checks():
    return {"checks": available_checks()}


@app.post("/sanitize", response_model=SanitizeResponse)
async def sanitize_csv(
    files: List[UploadFile] = File(...),
    schema_json: str = Form(..., alias="schema"),
    delimiter: str = Form(rules.DEFAULT_DELIMITER),
    disallowed: str = Form(rules.DEFAULT_DISALLOWED),
    remove_empty_lines: bool = Form(rules.REMOVE_EMPTY_LINES),
    has_header: Optional[bool] = Form(None),
):
    for upload in files:
        if not (upload.filename or "").lower().endswith(".csv"):
            raise HTTPException(status_code=422, detail="Only CSV files are supported")

    specs = parse_schema(schema_json)
    try:
        document = Document(specs, delimiter, disallowed, remove_empty_lines, has_header)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    results = []
    for upload in files:
        raw = await upload.read()
        results.append(sanitize_upload(document, raw, upload.filename))
    return {"files": results}


def main():
    """Start the API server via uvicorn."""
    import uvicorn  # pylint: disable=import-outside-toplevel

    logging.basicConfig(level=rules.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=rules.HOST, port=rules.PORT)


if __name__ == "__main__":
    main()
