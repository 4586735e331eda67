import base64
import json

from fastapi.testclient import TestClient
from csvfilter.main import app

client = TestClient(app)

SCHEMA = json.dumps([
    {"name": "Id", "allowed_blank": False, "allowed_characters": "0123456789"},
    {"name": "Name"},
    {"name": "City"},
])


def _decode(envelope):
    out_bytes = base64.b64decode(envelope["content_b64"])
    assert out_bytes.startswith(b"\xef\xbb\xbf")
    return out_bytes.decode("utf-8-sig")


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_checks_lists_builtins():
    r = client.get("/checks")
    assert r.status_code == 200
    assert {"date", "gender"} <= set(r.json()["checks"])


def test_sanitize_latin1_with_header():
    # Include a Latin-1 character to force non-ASCII handling
    raw = "Id,Name,City\n1,Paul,Montréal\n".encode("latin-1")

    files = {"files": ("test.csv", raw, "text/csv")}
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA})
    assert r.status_code == 200

    result = r.json()["files"][0]
    assert result["document_error"] is None
    assert result["summary"]["has_header"] is True
    assert result["error_csv"] is None
    assert _decode(result["sanitized_csv"]) == "Id,Name,City\n1,Paul,Montréal\n"


def test_sanitize_recovers_merged_rows_and_reports_errors():
    raw = b"1001,Ann,Oslo1002,Bob,Rome\n,,Paris\n"
    files = {"files": ("people.csv", raw, "text/csv")}
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA, "has_header": "false"})
    assert r.status_code == 200

    result = r.json()["files"][0]
    assert result["summary"]["rows"] == 3
    assert result["summary"]["recovered_rows"] == 1
    assert _decode(result["sanitized_csv"]) == "1001,Ann,Oslo\n1002,Bob,Rome\n,,Paris\n"

    assert result["error_csv"]["filename"] == "people.csv_ERROR.csv"
    assert _decode(result["error_csv"]) == (
        "Line,Field,Value,Error\n"
        "2,Id,,ERROR: Missing required value.\n"
    )
    assert result["errors"] == [{
        "row": 2,
        "column": "Id",
        "value": "",
        "issue": "blank_not_allowed",
        "message": "ERROR: Missing required value.",
    }]


def test_empty_file_does_not_affect_other_uploads():
    files = [
        ("files", ("empty.csv", b"\n  \n", "text/csv")),
        ("files", ("ok.csv", b"7,Eve,Lima\n", "text/csv")),
    ]
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA, "has_header": "false"})
    assert r.status_code == 200

    empty, ok = r.json()["files"]
    assert empty["document_error"] == "Empty files cannot be processed."
    assert empty["sanitized_csv"] is None
    assert ok["document_error"] is None
    assert _decode(ok["sanitized_csv"]) == "7,Eve,Lima\n"


def test_non_csv_rejected():
    files = {"files": ("notes.txt", b"a,b,c\n", "text/plain")}
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA})
    assert r.status_code == 422


def test_unknown_check_in_schema_rejected():
    schema = json.dumps([{"name": "DOB", "custom_checks": ["zodiac"]}])
    files = {"files": ("test.csv", b"1/2/2020\n", "text/csv")}
    r = client.post("/sanitize", files=files, data={"schema": schema})
    assert r.status_code == 422
    assert "zodiac" in r.json()["detail"]


def test_multi_character_delimiter_rejected():
    files = {"files": ("test.csv", b"a||b||c\n", "text/csv")}
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA, "delimiter": "||"})
    assert r.status_code == 422


def test_sanitize_reports_decoding():
    raw = b"\xef\xbb\xbf" + "Id,Name,City\r\n1,Zoë,Oslo\r\n".encode("utf-8")
    files = {"files": ("bom.csv", raw, "text/csv")}
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA})
    assert r.status_code == 200

    encoding = r.json()["files"][0]["normalizations"]["encoding"]
    assert encoding["decode_used"] == "utf-8-sig"
    assert encoding["newlines"]["crlf"] == 2


def test_delimiter_removed_by_scanner_rejected_over_http():
    files = {"files": ("test.csv", b"1\t2\t3\n", "text/csv")}
    r = client.post("/sanitize", files=files, data={"schema": SCHEMA, "delimiter": "\t"})
    assert r.status_code == 422


def test_schema_form_field_required():
    files = {"files": ("test.csv", b"1,Ann,Oslo\n", "text/csv")}
    r = client.post("/sanitize", files=files)
    assert r.status_code == 422

    r = client.post("/sanitize", files=files, data={"schema": SCHEMA, "has_header": "false"})
    assert r.status_code == 200
    assert _decode(r.json()["files"][0]["sanitized_csv"]) == "1,Ann,Oslo\n"
