from pipeline.build_counter import next_build_id


def test_counter_starts_at_one(tmp_path):
    counter = tmp_path / "state" / "build_number"

    assert next_build_id(counter) == 1
    assert next_build_id(counter) == 2
    assert counter.read_text().strip() == "2"


def test_corrupt_counter_restarts(tmp_path):
    counter = tmp_path / "build_number"
    counter.write_text("not-a-number")

    assert next_build_id(counter) == 1


def test_continues_existing_counter(tmp_path):
    counter = tmp_path / "build_number"
    counter.write_text("41\n")

    assert next_build_id(counter) == 42
