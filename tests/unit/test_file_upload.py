import pytest

from promptdrop.core.validation import FileConstraint
from promptdrop.generation_logic.file_upload import FileUpload

MB = 1024 * 1024


def _component(generate, seeded_rng, **kwargs):
    kwargs.setdefault("constraint", FileConstraint(max_files=5, max_size=10 * MB))
    return FileUpload(generate, progress_interval=0.001, rng=seeded_rng, **kwargs)


@pytest.mark.asyncio
async def test_drop_admits_file_and_notifies(fake_generate, seeded_rng, make_candidate):
    changes = []
    upload = _component(fake_generate, seeded_rng, on_files_change=changes.append)

    upload.drop([make_candidate("cat.png", size=2 * MB)])

    assert len(upload.batch) == 1
    assert upload.error is None
    assert [f.name for f in changes[-1]] == ["cat.png"]
    upload.close()


@pytest.mark.asyncio
async def test_oversize_drop_sets_error(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)

    upload.drop([make_candidate("huge.png", size=15 * MB)])

    assert len(upload.batch) == 0
    assert upload.error == "huge.png is too large. Max size is 10 MB."


@pytest.mark.asyncio
async def test_next_drop_replaces_error(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)
    upload.drop([make_candidate("huge.png", size=15 * MB)])

    upload.drop([make_candidate("bad.zip", mime_type="application/zip")])
    assert upload.error == "bad.zip has an invalid file type."

    upload.drop([make_candidate("ok.png")])
    assert upload.error is None
    upload.close()


@pytest.mark.asyncio
async def test_drops_accumulate_up_to_max(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)
    upload.drop([make_candidate(f"a{i}.png") for i in range(3)])
    upload.drop([make_candidate(f"b{i}.png") for i in range(2)])

    upload.drop([make_candidate("sixth.png")])

    assert len(upload.batch) == 5
    assert [f.name for f in upload.batch.files][:2] == ["a0.png", "a1.png"]
    assert upload.error == "You can only upload a maximum of 5 files."
    upload.close()


@pytest.mark.asyncio
async def test_progress_completes_for_each_file(fake_generate, seeded_rng, make_candidate):
    events = []
    upload = _component(fake_generate, seeded_rng, on_event=lambda t, p: events.append((t, p)))

    upload.drop([make_candidate("a.png"), make_candidate("b.pdf", mime_type="application/pdf")])
    await upload.progress.wait_all()

    assert set(upload.batch.progress.values()) == {100}
    snapshot = upload.snapshot()
    assert all(f.progress == 100 and not f.uploading for f in snapshot.files)
    progress_events = [p for t, p in events if t == "progress"]
    assert {p["file_id"] for p in progress_events} == {f.file_id for f in snapshot.files}


@pytest.mark.asyncio
async def test_same_name_twice_keeps_separate_progress(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)
    upload.drop([make_candidate("dup.png")])
    upload.drop([make_candidate("dup.png")])

    first, second = upload.batch.files
    assert first.file_id != second.file_id

    upload.remove_file(0)
    await upload.progress.wait_all()

    assert upload.batch.progress == {second.file_id: 100}


@pytest.mark.asyncio
async def test_remove_cancels_ticker(fake_generate, seeded_rng, make_candidate):
    events = []
    upload = _component(fake_generate, seeded_rng, on_event=lambda t, p: events.append((t, p)))
    upload.drop([make_candidate("a.png")])
    (record,) = upload.batch.files

    upload.remove_file(0)
    await upload.progress.wait_all()

    assert record.file_id not in upload.progress.active
    assert upload.batch.progress == {}
    assert not any(t == "progress" and p["file_id"] == record.file_id for t, p in events)


@pytest.mark.asyncio
async def test_remove_out_of_range(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)
    upload.drop([make_candidate("a.png")])

    with pytest.raises(IndexError):
        upload.remove_file(1)
    upload.close()


@pytest.mark.asyncio
async def test_clear_all(fake_generate, seeded_rng, make_candidate):
    changes = []
    upload = _component(fake_generate, seeded_rng, on_files_change=changes.append)
    upload.drop([make_candidate("a.png"), make_candidate("b.png")])

    upload.clear_all()

    assert len(upload.batch) == 0
    assert upload.batch.progress == {}
    assert upload.progress.active == set()
    assert changes[-1] == []


@pytest.mark.asyncio
async def test_disabled_component_ignores_drops(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng, disabled=True)

    assert upload.drop([make_candidate("a.png")]) is None
    assert len(upload.batch) == 0
    assert upload.snapshot().disabled is True


@pytest.mark.asyncio
async def test_submit_and_dismiss_switch_views(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)
    upload.drop([make_candidate("cat.png", size=2 * MB)])
    upload.set_prompt("Describe this image")

    await upload.submit()

    snapshot = upload.snapshot()
    assert snapshot.view == "result"
    assert snapshot.submission.result == "generated text"
    prompt, sent = fake_generate.calls[0]
    assert prompt == "Describe this image"
    assert sent.name == "cat.png"

    upload.dismiss_result()
    snapshot = upload.snapshot()
    assert snapshot.view == "batch"
    assert snapshot.count == 1
    assert snapshot.submission.prompt == "Describe this image"
    upload.close()


@pytest.mark.asyncio
async def test_snapshot_is_serializable_without_payload(fake_generate, seeded_rng, make_candidate):
    upload = _component(fake_generate, seeded_rng)
    upload.drop([make_candidate("cat.png", size=1536, content=b"secret-bytes")])

    data = upload.snapshot().model_dump_json()

    assert "secret-bytes" not in data
    assert '"size_label":"1.5 KB"' in data
    assert '"accept_hint":".jpeg, .jpg, .png, .gif, .pdf (Max 10 MB)"' in data
    upload.close()


@pytest.mark.asyncio
async def test_empty_result_stays_in_batch_view(seeded_rng, make_candidate):
    async def _blank(_prompt, _file):
        return ""

    upload = _component(_blank, seeded_rng)
    upload.drop([make_candidate("cat.png", size=2 * MB)])

    await upload.submit()

    snapshot = upload.snapshot()
    assert snapshot.submission.result == ""
    assert snapshot.view == "batch"
    upload.close()
