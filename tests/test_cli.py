"""kv command line: set/get/delete against a SQLite file, exit codes."""

from kvstore.cli import main


def test_set_get_delete(tmp_path, capsys):
    url = f"sqlite://{tmp_path}/kv.db"

    assert main(["--url", url, "set", "color", "blue"]) == 0
    assert main(["--url", url, "get", "color"]) == 0
    assert capsys.readouterr().out.strip() == "blue"

    assert main(["--url", url, "delete", "color"]) == 0
    assert main(["--url", url, "get", "color"]) == 1
    assert capsys.readouterr().out == ""


def test_normalize_flag(tmp_path, capsys):
    url = f"sqlite://{tmp_path}/kv.db"
    assert main(["--url", url, "--normalize", "set", "a/b", "x"]) == 0
    assert main(["--url", url, "get", "a_b"]) == 0
    assert capsys.readouterr().out.strip() == "x"


def test_bad_url_exits_2(capsys):
    assert main(["--url", "redis://nope", "get", "k"]) == 2
    assert "Unknown URL scheme" in capsys.readouterr().err


def test_setup_error_exits_2(tmp_path, capsys):
    url = f"sqlite://{tmp_path}/missing/dir/kv.db"
    assert main(["--url", url, "get", "k"]) == 2
    assert "cannot open database" in capsys.readouterr().err
