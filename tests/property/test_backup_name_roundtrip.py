from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from avskit.domain.backup import INT64_MAX, Backup, backup_file_name, parse_backup_name

_segment = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789._", min_size=1, max_size=12)
_instance_ids = st.lists(_segment, min_size=1, max_size=4).map("-".join)
_timestamps = st.integers(min_value=0, max_value=INT64_MAX)


@settings(max_examples=200)
@given(instance_id=_instance_ids, seconds=st.one_of(_timestamps, st.sampled_from([253402300800, INT64_MAX])))
def test_backup_name_round_trip(instance_id: str, seconds: int) -> None:
    name = backup_file_name(instance_id, seconds)

    parsed_id, parsed_ts = parse_backup_name(name)

    assert parsed_id == instance_id
    assert parsed_ts == seconds


@given(
    instance_id=_instance_ids,
    seconds=_timestamps,
    version=st.text(max_size=12),
    commit=st.text(alphabet="0123456789abcdef", max_size=40),
    urls=st.tuples(st.text(max_size=20), st.text(max_size=20)),
)
def test_backup_id_depends_only_on_identity_fields(
    instance_id: str, seconds: int, version: str, commit: str, urls: tuple[str, str]
) -> None:
    first = Backup(instance_id, seconds, version, commit, urls[0])
    second = Backup(instance_id, seconds, version, commit, urls[1])

    assert first.id == first.id == second.id
    assert len(first.id) == 40
