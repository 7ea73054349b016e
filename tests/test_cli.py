import pytest

from catalog_indexer import cli


@pytest.fixture
def cluster(monkeypatch, fake_client):
    for key in ("OS_URL", "INDEX_PREFIX", "MARC_RULES_PATH", "OS_BULK_SIZE"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(cli, "OpenSearchClient", lambda settings: fake_client)
    return fake_client


@pytest.fixture
def marc_file(tmp_path, make_record, make_stream):
    path = tmp_path / "records.mrc"
    path.write_bytes(make_stream(make_record("1", title="First"), make_record("2", title="Second")).getvalue())
    return path


def test_ingest_titles(cluster, marc_file, capsys):
    assert cli.main(["ingest", str(marc_file), "--consumer", "title"]) == 0
    captured = capsys.readouterr()
    assert captured.out == "First\nSecond\n"
    assert "Total records ingested: 2" in captured.err


def test_ingest_and_promote(cluster, marc_file, capsys):
    assert cli.main(["--index", "rdi_test", "ingest", str(marc_file), "--prefix", "rdi", "--auto"]) == 0
    assert len(cluster.indices["rdi_test"]) == 2
    assert cluster.aliases["rdi"] == ["rdi_test"]
    assert "Total records ingested: 2" in capsys.readouterr().err


def test_ingest_bulk_failure_reports_partial_count(cluster, marc_file, capsys):
    cluster.bulk_responses = [(400, "mapper_parsing_exception")]
    assert cli.main(["--index", "aleph_test", "ingest", str(marc_file)]) == 1
    assert "Total records ingested: 0" in capsys.readouterr().err


def test_ingest_decode_abort_reports_partial_count(cluster, tmp_path, make_record, make_stream, monkeypatch, capsys):
    monkeypatch.setenv("INGEST_MAX_DECODE_ERRORS", "2")
    junk = b"00026" + b"x" * 20 + b"\x1d"
    path = tmp_path / "damaged.mrc"
    path.write_bytes(make_stream(make_record("1"), make_record("2"), junk, junk, make_record("3")).getvalue())

    assert cli.main(["--index", "aleph_test", "ingest", str(path)]) == 1
    assert len(cluster.indices["aleph_test"]) == 2
    assert cluster.refreshed == ["aleph_test"]
    assert "Total records ingested: 2" in capsys.readouterr().err


def test_ingest_missing_file(cluster, tmp_path):
    assert cli.main(["ingest", str(tmp_path / "nope.mrc")]) == 1


def test_indexes_and_aliases(cluster, capsys):
    cluster.create_index("aleph_1", {})
    cluster.aliases = {"aleph": ["aleph_1"]}

    assert cli.main(["indexes"]) == 0
    assert cli.main(["aliases"]) == 0

    out = capsys.readouterr().out
    assert "Name: aleph_1" in out
    assert "Alias: aleph" in out


def test_ping(cluster, capsys):
    assert cli.main(["ping"]) == 0
    out = capsys.readouterr().out
    assert "Cluster: catalog" in out
    assert "Version: 2.11.0" in out


def test_delete(cluster):
    cluster.create_index("aleph_1", {})
    assert cli.main(["--index", "aleph_1", "delete"]) == 0
    assert "aleph_1" not in cluster.indices


def test_delete_missing_index_fails(cluster):
    assert cli.main(["--index", "aleph_1", "delete"]) == 1


def test_promote_uses_default_prefix(cluster):
    cluster.create_index("aleph_2", {})
    assert cli.main(["--index", "aleph_2", "promote"]) == 0
    assert cluster.aliases["aleph"] == ["aleph_2"]


def test_reindex(cluster, capsys):
    cluster.create_index("aleph_1", {})
    cluster.indices["aleph_1"].append({"identifier": "1"})
    assert cli.main(["--index", "aleph_1", "reindex", "--destination", "aleph_2"]) == 0
    assert "1 documents reindexed" in capsys.readouterr().out


def test_reindex_requires_destination(cluster):
    with pytest.raises(SystemExit):
        cli.main(["--index", "aleph_1", "reindex"])
