#!/usr/bin/env python3
"""Seed a demo moderation queue and privacy policy through the service layer.

Usage:
    python scripts/seed_governance_demo.py

Creates:
    - 4 content submissions across the priority/severity range, one approved
      and one assigned
    - 1 privacy policy with en v1 (activated) and en v2 (published, activated),
      so v1 ends up superseded
    - Prints the governance overview summary built from that data

Everything goes through the same service functions callers use, so the run
also checks the ranking, audit and activation invariants end to end.
"""
import sys
from pathlib import Path

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from app.db import Base, SessionLocal, engine
from app.logging_config import setup_logging
from app.models.legal_document import LegalDocument
from app.services.audit import Actor
from app.services.governance_overview import get_governance_overview
from app.services.legal_policy import (
    activate_document_version,
    create_document_version,
    create_legal_document,
    get_legal_document,
    publish_document_version,
)
from app.services.moderation_queue import (
    assign_submission,
    list_content_submissions,
    submit_content,
    update_submission_status,
)

REVIEWER = Actor(actor_id="seed-reviewer", actor_type="admin", roles=("admin",))

SUBMISSIONS = [
    {
        "reference_id": "gig-1042",
        "reference_type": "gig",
        "title": "Logo design in 24 hours",
        "priority": "high",
        "severity": "critical",
        "risk_score": 88.5,
    },
    {
        "reference_id": "profile-77",
        "reference_type": "profile",
        "title": "Freelancer profile with external payment links",
        "priority": "urgent",
        "severity": "low",
        "risk_score": 41,
    },
    {
        "reference_id": "post-9001",
        "reference_type": "post",
        "title": "Community post flagged for spam",
        "priority": "standard",
        "severity": "medium",
        "risk_score": 12.25,
    },
    {
        "reference_id": "comment-3",
        "reference_type": "comment",
        "title": "Comment reported by two users",
        "priority": "low",
        "severity": "low",
    },
]


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # Guard: skip if data already exists
        existing = db.query(LegalDocument).filter(LegalDocument.slug == "privacy-policy").first()
        if existing:
            print("Seed data already exists, skipping.")
            return

        # =====================================================================
        # 1. Moderation queue
        # =====================================================================
        print("Creating content submissions...")
        created = [submit_content(db, payload, actor=REVIEWER) for payload in SUBMISSIONS]
        for item in created:
            print(f"  Queued {item['reference_type']}:{item['reference_id']} "
                  f"({item['priority']}/{item['severity']})")

        queue = list_content_submissions(db)
        ranked = [item["reference_id"] for item in queue["items"]]
        assert ranked[0] == "profile-77", ranked
        assert ranked[1] == "gig-1042", ranked
        print(f"  Ranking: {' > '.join(ranked)} ✓")

        assign_submission(db, created[0]["id"], {"reviewer_id": "reviewer-7", "team": "trust"}, actor=REVIEWER)
        print("  Assigned gig-1042 to reviewer-7 (trust) ✓")

        update_submission_status(
            db,
            created[2]["id"],
            {"status": "approved", "resolution_notes": "Not spam after review"},
            actor=REVIEWER,
        )
        print("  Approved post-9001 ✓")

        # =====================================================================
        # 2. Privacy policy lifecycle
        # =====================================================================
        print("\nCreating privacy policy...")
        document = create_legal_document(
            db,
            {
                "title": "Privacy Policy",
                "category": "privacy",
                "audience_roles": ["freelancer", "client"],
                "editor_roles": ["legal"],
                "tags": ["gdpr", "core"],
                "initial_version": {
                    "locale": "en",
                    "content": "We process account and usage data to run the marketplace.",
                    "summary": "Initial privacy notice",
                },
            },
            actor=REVIEWER,
        )
        v1 = document["versions"][0]
        print(f"  Created document: {document['slug']} (en v{v1['version']} draft)")

        publish_document_version(db, document["id"], v1["id"], actor=REVIEWER)
        activate_document_version(db, document["id"], v1["id"], actor=REVIEWER)
        print("  Published and activated en v1 ✓")

        v2 = create_document_version(
            db,
            document["id"],
            {
                "locale": "en",
                "content": "We process account, usage and payment data to run the marketplace.",
                "change_summary": "Added payment data processing",
            },
            actor=REVIEWER,
        )
        assert v2["version"] == 2
        publish_document_version(db, document["id"], v2["id"], actor=REVIEWER)
        activated = activate_document_version(db, document["id"], v2["id"], actor=REVIEWER)
        assert activated["active_version_id"] == v2["id"]
        print("  Published and activated en v2 ✓")

        detail = get_legal_document(db, "privacy-policy", include_audit=True)
        superseded = [v for v in detail["versions"] if v["superseded_at"] is not None]
        assert [v["id"] for v in superseded] == [v1["id"]]
        print(f"  en v1 superseded, status={detail['status']} ✓")
        print(f"  Audit events recorded: {len(detail['audit_events'])}")

    except Exception as e:
        db.rollback()
        print(f"\nERROR: {e}")
        raise
    finally:
        db.close()

    # =========================================================================
    # 3. Overview
    # =========================================================================
    overview = get_governance_overview(SessionLocal)
    print("\n--- Governance Overview ---")
    print(f"  Queue summary: {overview['content_queue']['summary']}")
    print(f"  Documents: {overview['legal_policies']['summary']['documents']}")
    print(f"  Versions: {overview['legal_policies']['summary']['versions']}")
    print(f"  Activity items (last {overview['lookback_days']} days): {len(overview['activity'])}")


if __name__ == "__main__":
    setup_logging()
    seed()
