import pytest


def access_line(ip="1.2.3.1", method="GET", path="/a", status="200", when="10/Oct/2023:13:55:36 +0000", size="512"):
    return f'{ip} - - [{when}] "{method} {path} HTTP/1.1" {status} {size}\n'


@pytest.fixture
def sample_lines():
    return [
        access_line(ip="10.0.0.1", status="200", when="10/Oct/2023:09:00:01 +0000"),
        access_line(ip="10.0.0.1", status="404", when="10/Oct/2023:09:10:00 +0000"),
        access_line(ip="10.0.0.2", method="POST", path="/login", status="500", when="10/Oct/2023:13:00:00 +0000"),
        access_line(ip="10.0.0.3", status="200", when="11/Oct/2023:09:30:00 +0000"),
        access_line(ip="10.0.0.2", method="PUT", path="/item", status="201", when="11/Oct/2023:22:45:00 +0000"),
        access_line(ip="10.0.0.1", status="503", when="11/Oct/2023:22:50:00 +0000"),
        "not an access log line\n",
    ]


@pytest.fixture
def log_file(tmp_path, sample_lines):
    path = tmp_path / "access.log"
    path.write_text("".join(sample_lines), encoding="utf-8")
    return path
