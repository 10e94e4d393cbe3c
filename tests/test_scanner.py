import re

from image_watcher.settings import WatchRule
from image_watcher.upload_service.identity import IdentityCache
from image_watcher.upload_service.scanner import DirectoryScanner
from image_watcher.upload_service.service import UploadPipeline

from conftest import write_image


def make_scanner(s3, rules):
    pipeline = UploadPipeline(s3, IdentityCache(), 1000, 5_000_000)
    return DirectoryScanner(rules, pipeline)


def test_upload_existing_scenario(mocker, incoming_tree):
    s3 = mocker.Mock()
    scanner = make_scanner(s3, [WatchRule(dir=f"{incoming_tree}/*/incoming", tag="cam1")])

    summary = scanner.upload_existing()

    assert [d.directory for d in summary.directories] == [f"{incoming_tree}/site7/incoming"]
    assert summary.uploaded == 1
    s3.put_object.assert_called_once()
    kwargs = s3.put_object.call_args.kwargs
    assert re.match(r"^[0-9a-f-]{36}\.jpg$", kwargs["key"])
    assert kwargs["content_type"] == "image/jpeg"
    assert kwargs["metadata"] == {"dir-tag": "cam1"}


def test_matching_directories_without_wildcard(mocker, incoming_tree):
    target = f"{incoming_tree}/site7/outgoing"
    scanner = make_scanner(mocker.Mock(), [WatchRule(dir=target, tag="out")])
    assert list(scanner.matching_directories(scanner.rules[0])) == [target]


def test_walk_root_falls_back_to_parent(tmp_path):
    (tmp_path / "cam1").mkdir()
    assert DirectoryScanner.walk_root(WatchRule(dir=f"{tmp_path}/cam*", tag="")) == str(tmp_path)
    assert DirectoryScanner.walk_root(WatchRule(dir=f"{tmp_path}/*", tag="")) == f"{tmp_path}/"


def test_wildcard_inside_directory_name(mocker, tmp_path):
    s3 = mocker.Mock()
    write_image(tmp_path / "cam1" / "a.jpg", size=2_000)
    write_image(tmp_path / "cam2" / "b.jpg", size=2_000)
    write_image(tmp_path / "other" / "c.jpg", size=2_000)
    scanner = make_scanner(s3, [WatchRule(dir=f"{tmp_path}/cam*", tag="cams")])

    summary = scanner.upload_existing()

    assert sorted(d.directory for d in summary.directories) == [f"{tmp_path}/cam1", f"{tmp_path}/cam2"]
    assert s3.put_object.call_count == 2


def test_missing_base_directory_yields_nothing(mocker, tmp_path):
    scanner = make_scanner(mocker.Mock(), [WatchRule(dir=f"{tmp_path}/nope/*/x", tag="")])
    assert scanner.upload_existing().directories == []


def test_watch_targets(mocker, incoming_tree):
    rules = [
        WatchRule(dir=f"{incoming_tree}/*/incoming", tag="cam1"),
        WatchRule(dir=f"{incoming_tree}/site7/incoming", tag="dup"),
    ]
    scanner = make_scanner(mocker.Mock(), rules)

    assert scanner.watch_targets(use_wildcard=True) == [f"{incoming_tree}/site7/incoming"]
    assert scanner.watch_targets(use_wildcard=False) == [
        f"{incoming_tree}/*/incoming",
        f"{incoming_tree}/site7/incoming",
    ]
