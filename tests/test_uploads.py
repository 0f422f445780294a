"""
Tests for the upload and admin services.
"""

import pytest

from dermopt.core.types import ResourceType, UploadType
from dermopt.data.ndc_mappings import BIOLOGIC_NDC_MAPPINGS
from dermopt.orchestrator import AdminService, InvalidResourceError, UploadService, parse_resource_type, seed_ndc_mappings


FORMULARY = b"""Drug Name,Generic Name,Drug Class,Tier,Requires PA,Annual Cost
Humira,adalimumab,TNF_INHIBITOR,3,Yes,84000
Amjevita,adalimumab-atto,TNF_INHIBITOR,1,No,30000
,nothing,OTHER,1,No,1
Skyrizi,risankizumab,IL23_INHIBITOR,2,No,60000
"""

ELIGIBILITY = b"""\xef\xbb\xbfMember ID,First Name,Last Name,Plan Name
M001,Ana,Lopez,Acme Health
m002,Ben,Stone,
,No,Id,Acme Health
"""

CLAIMS = b"""Member ID,Fill Date,Drug Name,NDC,Member Paid
M001,2024-01-10,adalimumab,0074-0554-02,250
M002,2024-01-12,Cosentyx,,60
M001,someday,Humira,,250
M999,2024-01-15,Skyrizi,,50
"""


@pytest.fixture
def uploads(db, knowledge):
    return UploadService(db, knowledge)


@pytest.fixture
def admin(db, knowledge):
    return AdminService(db, knowledge)


class TestFormularyUpload:
    def test_counts_and_plan(self, uploads, db):
        summary = uploads.upload_formulary(FORMULARY, "formulary.csv", "Acme Health")
        assert (summary.rows_processed, summary.rows_failed) == (3, 1)
        assert [e.row for e in summary.errors] == [3]
        assert summary.details["plan_name"] == "Acme Health"
        assert [d.drug_name for d in db.get_formulary(summary.details["plan_id"])] == ["Amjevita", "Skyrizi", "Humira"]

    def test_default_plan(self, uploads):
        summary = uploads.upload(UploadType.FORMULARY, FORMULARY, "f.csv")
        assert summary.details["plan_name"] == "Default Plan"

    def test_aborted_batch_fails_every_row(self, uploads, db):
        summary = uploads.upload_formulary(b"Generic,Tier\na,1\nb,2\n", "bad.csv", "Acme Health")
        assert (summary.rows_processed, summary.rows_failed) == (0, 2)
        assert summary.errors[0].row == 0
        assert db.get_stats()["plans"] == 0

    def test_line_with_extra_fields_is_a_row_error(self, uploads, db):
        """A ragged line is rejected on its own; the rows around it are stored."""
        content = b"Drug Name,Tier\nHumira,3\nEnbrel,2,extra,junk\nSkyrizi,2\n"
        summary = uploads.upload_formulary(content, "ragged.csv", "Acme Health")
        assert (summary.rows_processed, summary.rows_failed) == (2, 1)
        assert [(e.row, e.error) for e in summary.errors] == [(2, "Expected 2 fields, saw 4")]
        drugs = db.get_formulary(summary.details["plan_id"])
        assert sorted(d.drug_name for d in drugs) == ["Humira", "Skyrizi"]

    def test_non_utf8_file_is_logged_not_raised(self, uploads, db):
        summary = uploads.upload(UploadType.FORMULARY, b"Drug Name,Tier\nEnbr\xe9l,2\n", "latin1.csv")
        assert summary.rows_processed == 0
        assert summary.errors[0].row == 0
        assert "UTF-8" in summary.errors[0].error
        assert db.get_stats()["plans"] == 0
        assert [u["file_name"] for u in db.list_uploads()] == ["latin1.csv"]


class TestEligibilityUpload:
    def test_creates_then_updates(self, uploads, db):
        summary = uploads.upload_eligibility(ELIGIBILITY, "members.csv", plan_name="Fallback Plan")
        assert (summary.rows_processed, summary.rows_failed) == (2, 1)
        assert summary.details == {"created": 2, "updated": 0, "plans": ["Acme Health", "Fallback Plan"]}
        ben = db.get_patient_by_external_id("M002")
        assert db.get_plan(ben.plan_id).name == "Fallback Plan"

        again = uploads.upload_eligibility(ELIGIBILITY, "members.csv")
        assert (again.details["created"], again.details["updated"]) == (0, 2)
        assert db.get_stats()["patients"] == 2


class TestClaimsUpload:
    def test_parse_link_and_store(self, uploads, db):
        uploads.upload_eligibility(ELIGIBILITY, "members.csv", plan_name="Acme Health")
        summary = uploads.upload_claims(CLAIMS, "claims.csv")
        assert (summary.rows_processed, summary.rows_failed) == (2, 2)
        assert [e.row for e in summary.errors] == [3, 4]
        assert "M999" in summary.errors[1].error
        assert summary.details == {"patients": 2, "unlinked": 1}

        ana = db.get_patient_by_external_id("M001")
        claims = db.get_claims_for_patient(ana.id)
        assert [(c.drug_name, c.ndc_code) for c in claims] == [("Humira", "00074055402")]

    def test_uses_stored_ndc_mappings(self, uploads, db):
        inserted, _, _ = seed_ndc_mappings(db)
        assert inserted > 0
        assert seed_ndc_mappings(db) == (0, 0, inserted)
        uploads.upload_eligibility(ELIGIBILITY, "members.csv", plan_name="Acme Health")
        assert uploads.upload_claims(CLAIMS, "claims.csv").rows_processed == 2

    def test_reseed_overwrites_changed_mapping(self, db):
        first = BIOLOGIC_NDC_MAPPINGS[0]
        db.upsert_ndc_mappings([first.model_copy(update={"drug_name": "STALE"})])
        inserted, updated, _ = seed_ndc_mappings(db)
        assert updated == 1
        assert inserted == len({m.ndc_code for m in BIOLOGIC_NDC_MAPPINGS}) - 1
        assert db.load_ndc_lookup().drug_name(first.ndc_code) == first.drug_name

    def test_slash_dates_are_accepted(self, uploads, db):
        uploads.upload_eligibility(ELIGIBILITY, "members.csv", plan_name="Acme Health")
        summary = uploads.upload_claims(b"Member ID,Fill Date,Drug Name\nM001,2024/01/05,Humira\n", "c.csv")
        assert summary.rows_failed == 0
        ana = db.get_patient_by_external_id("M001")
        assert [c.fill_date.isoformat() for c in db.get_claims_for_patient(ana.id)] == ["2024-01-05"]

    def test_missing_columns_abort(self, uploads):
        summary = uploads.upload_claims(b"Fill Date,Drug Name\n2024-01-01,Humira\n2024-02-01,Humira\n", "c.csv")
        assert (summary.rows_processed, summary.rows_failed) == (0, 2)


class TestKnowledgeUpload:
    def test_title_from_heading(self, uploads, knowledge):
        summary = uploads.upload_knowledge(b"# Adalimumab tapering\n\nExtend to every 3 weeks.", "guide.md")
        assert summary.rows_processed == 1
        assert summary.details["title"] == "Adalimumab tapering"
        assert knowledge.search("tapering")[0].title == "Adalimumab tapering"

    def test_title_from_file_name(self, uploads):
        summary = uploads.upload(UploadType.KNOWLEDGE, "Plain text evidence.", "biosimilar_switching.txt")
        assert summary.details["title"] == "biosimilar switching"

    def test_explicit_title(self, uploads):
        summary = uploads.upload(UploadType.KNOWLEDGE, "# Heading\ntext", "x.md", title="Chosen")
        assert summary.details["title"] == "Chosen"

    def test_empty_document(self, uploads, knowledge):
        summary = uploads.upload_knowledge(b"  \n", "empty.md")
        assert summary.rows_processed == 0
        assert [(e.row, e.error) for e in summary.errors] == [(0, "No data provided")]
        assert knowledge.count() == 0


class TestUploadLog:
    def test_every_upload_is_logged(self, uploads, db):
        uploads.upload_formulary(FORMULARY, "formulary.csv")
        uploads.upload_knowledge(b"", "empty.md")
        logs = db.list_uploads()
        assert {(u["upload_type"], u["file_name"]) for u in logs} == {
            ("formulary", "formulary.csv"), ("knowledge", "empty.md"),
        }
        formulary_log = next(u for u in logs if u["upload_type"] == "formulary")
        assert (formulary_log["rows_processed"], formulary_log["rows_failed"]) == (3, 1)


class TestAdminService:
    @pytest.mark.parametrize(("value", "expected"), [("knowledge", ResourceType.KNOWLEDGE), (" Claims ", ResourceType.CLAIMS)])
    def test_parse_resource_type(self, value, expected):
        assert parse_resource_type(value) == expected

    @pytest.mark.parametrize("value", ["patients", "", None])
    def test_invalid_resource_type(self, value):
        with pytest.raises(InvalidResourceError, match="Invalid type"):
            parse_resource_type(value)

    def test_list_and_delete(self, admin, uploads):
        uploads.upload_formulary(FORMULARY, "formulary.csv", "Acme Health")
        uploads.upload_knowledge(b"# Doc\nbody", "doc.md")
        drugs = admin.list(ResourceType.FORMULARY)
        assert [d["drug_name"] for d in drugs] == ["Amjevita", "Skyrizi", "Humira"]
        assert admin.delete(ResourceType.FORMULARY, drugs[0]["id"])
        assert not admin.delete(ResourceType.FORMULARY, drugs[0]["id"])

        doc = admin.list(ResourceType.KNOWLEDGE)[0]
        assert admin.delete(ResourceType.KNOWLEDGE, doc["id"])
        assert admin.list(ResourceType.KNOWLEDGE) == []
        assert len(admin.list(ResourceType.UPLOADS)) == 2

    def test_uploads_cannot_be_deleted(self, admin):
        with pytest.raises(InvalidResourceError):
            admin.delete(ResourceType.UPLOADS, "any")
