"""
Tests for record types and helpers.
"""

import base64
from datetime import date

import pytest

from jobtracker.models import (
    FilterSpec,
    Job,
    JobStatus,
    JobTag,
    SortSpec,
    create_empty_job,
    create_job_image,
    default_tags,
    generate_id,
)


class TestJob:
    """Test the Job dataclass."""

    def test_status_string_is_coerced(self, make_job):
        """Test that a status string is coerced to JobStatus."""
        job = make_job(status="Interviewing")
        assert job.status is JobStatus.INTERVIEWING

    def test_unknown_status_rejected(self, make_job):
        """Test that an unknown status fails construction."""
        with pytest.raises(ValueError):
            make_job(status="Ghosted")

    def test_duplicate_tags_dropped_on_construction(self, make_job, remote_tag):
        """Test that repeated tag ids keep only the first tag."""
        job = make_job(tags=[remote_tag, JobTag(id=remote_tag.id, name="Other", color="#000")])
        assert [t.name for t in job.tags] == ["Remote"]

    def test_add_tag_is_idempotent(self, make_job, remote_tag):
        """Test that adding the same tag twice keeps one copy."""
        job = make_job()
        job.add_tag(remote_tag)
        job.add_tag(remote_tag)
        assert len(job.tags) == 1

    def test_add_tag_embeds_a_copy(self, make_job, remote_tag):
        """Renaming the original tag later does not touch the embedded one."""
        job = make_job()
        job.add_tag(remote_tag)
        remote_tag.name = "Renamed"
        assert job.tags[0].name == "Remote"

    def test_remove_tag(self, make_job, remote_tag, contract_tag):
        """Test removing a present and a missing tag."""
        job = make_job(tags=[remote_tag, contract_tag])
        assert job.remove_tag(remote_tag.id) is True
        assert job.remove_tag("missing") is False
        assert [t.id for t in job.tags] == [contract_tag.id]

    def test_copy_is_independent(self, sample_jobs):
        """Test that a copied job shares no lists with the original."""
        original = sample_jobs[2]
        clone = original.copy()
        clone.images[0].name = "changed.png"
        clone.tags.append(JobTag(id="x", name="x"))
        assert original.images[0].name == "offer.png"
        assert original.tags == []

    def test_dict_uses_wire_names(self, sample_jobs):
        """Test that to_dict uses camelCase wire names."""
        data = sample_jobs[2].to_dict()
        assert data["applicationDate"] == "2023-12-20"
        assert data["status"] == "Offered"
        assert data["images"][0]["createdAt"] == 1_700_000_000_000
        assert "application_date" not in data

    def test_from_dict_restores_equal_job(self, sample_jobs):
        """Test that from_dict rebuilds an equal job."""
        for job in sample_jobs:
            assert Job.from_dict(job.to_dict()) == job

    def test_from_dict_missing_field(self, sample_jobs):
        """Test that a missing field raises KeyError."""
        data = sample_jobs[0].to_dict()
        del data["title"]
        with pytest.raises(KeyError):
            Job.from_dict(data)

    def test_from_dict_bad_timestamp(self, sample_jobs):
        """Test that a non-integer timestamp raises TypeError."""
        data = sample_jobs[0].to_dict()
        data["createdAt"] = "yesterday"
        with pytest.raises(TypeError):
            Job.from_dict(data)


class TestHelpers:
    """Test factory helpers."""

    def test_create_empty_job_defaults(self):
        """Test the defaults of a blank job."""
        job = create_empty_job()
        assert job.title == job.company == job.location == job.notes == ""
        assert job.status is JobStatus.APPLIED
        assert job.application_date == date.today().isoformat()
        assert job.images == [] and job.tags == []
        assert job.created_at == job.updated_at > 0

    def test_generate_id_unique(self):
        """Test that generated ids do not repeat."""
        ids = {generate_id() for _ in range(200)}
        assert len(ids) == 200

    def test_default_tags(self):
        """Test the five default tags."""
        tags = default_tags()
        assert [t.name for t in tags] == ["Remote", "Full-time", "Part-time", "Contract", "Internship"]
        assert len({t.id for t in tags}) == 5

    def test_create_job_image(self, tmp_path):
        """Test that an image file becomes a base64 data URL."""
        path = tmp_path / "screenshot.png"
        path.write_bytes(b"\x89PNG fake")
        image = create_job_image(path)
        assert image.name == "screenshot.png"
        prefix = "data:image/png;base64,"
        assert image.data.startswith(prefix)
        assert base64.b64decode(image.data[len(prefix):]) == b"\x89PNG fake"


class TestFilterSpec:
    """Test filter merging."""

    def test_defaults(self):
        """Test the default filter."""
        spec = FilterSpec()
        assert spec.status == "All"
        assert spec.tag_id is None
        assert spec.search == ""
        assert spec.sort == SortSpec("default", "desc")

    def test_merge_partial_sort(self):
        """Test that a partial sort keeps the current direction."""
        spec = FilterSpec().merge({"sort": {"field": "company"}})
        assert spec.sort == SortSpec("company", "desc")

    def test_merge_accepts_wire_tag_key_and_enum_status(self):
        """Test that merge takes tagId and a JobStatus value."""
        spec = FilterSpec().merge({"tagId": "t1", "status": JobStatus.OFFERED})
        assert spec.tag_id == "t1"
        assert spec.status == "Offered"

    def test_merge_leaves_original_untouched(self):
        """Test that merge returns a new filter."""
        spec = FilterSpec()
        spec.merge({"search": "remote"})
        assert spec.search == ""

    def test_merge_plain_status_string(self):
        """Test that a plain status string is kept as given."""
        assert FilterSpec().merge({"status": "Offered"}).status == "Offered"

    def test_merge_unknown_key(self):
        """Test that an unknown filter key raises KeyError."""
        with pytest.raises(KeyError):
            FilterSpec().merge({"salary": 100})

    def test_hashable(self):
        """Test that equal filters hash equally."""
        assert hash(FilterSpec()) == hash(FilterSpec())
