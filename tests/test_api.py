import json

from .conftest import add_proposal
from procurement.errors import GenerationFailure
from procurement.models import ParsedProposal


def test_create_and_get_rfp(client):
    r = client.post(
        "/api/v1/rfps",
        json={"title": "Laptops", "description": "20 laptops", "budget": 50000, "delivery_deadline": "2026-12-01"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["currency"] == "USD"
    assert body["status"] == "DRAFT"

    r = client.get(f"/api/v1/rfps/{body['id']}")
    assert r.status_code == 200
    assert r.json()["proposals"] == []

    listed = client.get("/api/v1/rfps").json()
    assert listed[0]["proposal_count"] == 0


def test_create_rfp_requires_title(client):
    r = client.post("/api/v1/rfps", json={"title": "", "description": "d"})
    assert r.status_code == 422


def test_missing_rfp_is_404(client):
    r = client.get("/api/v1/rfps/99")
    assert r.status_code == 404
    assert r.json()["status"] == "error"
    assert r.json()["stage"] == "lookup"


def test_patch_rfp(client, rfp):
    r = client.patch(f"/api/v1/rfps/{rfp.id}", json={"status": "AWARDED"})
    assert r.status_code == 200
    assert r.json()["status"] == "AWARDED"
    assert r.json()["title"] == rfp.title


def test_vendor_duplicate_email(client):
    body = {"name": "Acme", "email": "sales@acme.example.com"}
    assert client.post("/api/v1/vendors", json=body).status_code == 201
    r = client.post("/api/v1/vendors", json=body)
    assert r.status_code == 409


def test_vendor_invalid_email(client):
    assert client.post("/api/v1/vendors", json={"name": "Acme", "email": "nope"}).status_code == 422


def test_rfp_from_text(client, generator):
    generator.responses.append('```json\n{"title": "Laptops", "currency": "usd", "items": []}\n```')
    r = client.post("/api/v1/rfps/from-text", json={"text": "I need laptops"})
    assert r.status_code == 200
    assert r.json()["currency"] == "USD"


def test_rfp_from_text_malformed_returns_raw(client, generator):
    generator.responses.append("I could not understand that.")
    r = client.post("/api/v1/rfps/from-text", json={"text": "I need laptops"})
    assert r.status_code == 502
    assert r.json()["stage"] == "parse"
    assert r.json()["raw"] == "I could not understand that."


def test_generation_failure_is_502(client, generator):
    generator.responses.append(GenerationFailure("quota exceeded"))
    r = client.post("/api/v1/rfps/from-text", json={"text": "I need laptops"})
    assert r.status_code == 502
    assert r.json()["stage"] == "generation"


def test_structure_existing_rfp(client, generator, rfp):
    generator.responses.append({"title": "Laptops", "items": [{"name": "laptop", "quantity": 20}]})
    r = client.post(f"/api/v1/rfps/{rfp.id}/structure")
    assert r.status_code == 200
    assert r.json()["structured_data"]["items"][0]["name"] == "laptop"


def test_send_rfp(client, mailer, rfp, vendors):
    mailer.fail_for.add(vendors[1].email)
    r = client.post(f"/api/v1/rfps/{rfp.id}/send", json={"vendor_ids": [v.id for v in vendors]})
    assert r.status_code == 200
    assert r.json() == {"success": True, "sent_count": 1}
    assert client.get(f"/api/v1/rfps/{rfp.id}").json()["status"] == "SENT"
    assert f"[RFP-{rfp.id}]" in mailer.sent[0][1]


def test_send_requires_vendors(client, rfp):
    assert client.post(f"/api/v1/rfps/{rfp.id}/send", json={"vendor_ids": []}).status_code == 422


def test_parse_and_create_proposal(client, generator, rfp, vendors):
    generator.responses.append(
        {"totalPrice": 45000, "currency": "USD", "deliveryDays": 25, "warrantyMonths": 12,
         "paymentTerms": "Net 30", "completenessScore": 0.9, "risks": [], "caveats": None}
    )
    parsed = client.post(
        "/api/v1/proposals/parse", json={"rfp_id": rfp.id, "vendor_text": "$45000, 25 days, 12 months"}
    )
    assert parsed.status_code == 200
    assert parsed.json()["totalPrice"] == 45000

    r = client.post(
        "/api/v1/proposals",
        json={"rfp_id": rfp.id, "vendor_id": vendors[0].id, "raw_text": "$45000", "parsed_data": parsed.json()},
    )
    assert r.status_code == 201
    assert r.json()["total_price"] == 45000
    assert r.json()["delivery_days"] == 25
    assert r.json()["completeness_score"] == 0.9


def test_parse_proposal_unknown_rfp(client):
    r = client.post("/api/v1/proposals/parse", json={"rfp_id": 5, "vendor_text": "x"})
    assert r.status_code == 404


def test_compare_needs_two_proposals(client, generator, repo, rfp, vendors):
    add_proposal(repo, rfp, vendors[0], total_price=100)
    r = client.get(f"/api/v1/proposals/compare/{rfp.id}")
    assert r.status_code == 400
    assert len(r.json()["proposals"]) == 1
    assert generator.prompts == []


def test_compare(client, generator, repo, rfp, vendors):
    add_proposal(repo, rfp, vendors[0], parsed_data=ParsedProposal(total_price=100, delivery_days=10,
                                                                  warranty_months=24, completeness_score=1.0))
    add_proposal(repo, rfp, vendors[1], parsed_data=ParsedProposal(total_price=120, delivery_days=10,
                                                                  warranty_months=12, completeness_score=1.0))
    generator.responses.append("no idea")
    r = client.get(f"/api/v1/proposals/compare/{rfp.id}")
    assert r.status_code == 200
    body = r.json()
    assert [p["calculated_score"] for p in body["proposals"]] == [100, 88]
    assert body["proposals"][0]["vendor"]["name"] == "TechFlow Solutions"
    assert body["recommendation"]["recommended_vendor_id"] is None
    assert body["recommendation"]["available"] is False


def test_inbound_email_returns_draft(client, generator, repo, rfp, vendors):
    generator.responses.append(json.dumps({"totalPrice": "40,000", "warrantyMonths": "2 years"}))
    r = client.post(
        "/api/v1/email/inbound",
        json={
            "from_email": vendors[0].email,
            "subject": f"Re: Request for Proposal: Office laptops [RFP-{rfp.id}]",
            "body": "We can do 40,000 with a 2 year warranty.",
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["rfp_id"] == rfp.id
    assert body["vendor_id"] == vendors[0].id
    assert body["parsed"]["totalPrice"] == 40000
    assert body["parsed"]["warrantyMonths"] == 24
    assert repo.list_proposals(rfp.id) == []


def test_inbound_email_without_token(client):
    r = client.post(
        "/api/v1/email/inbound", json={"from_email": "a@example.com", "subject": "hello", "body": "quote"}
    )
    assert r.status_code == 400


def test_patch_rfp_rejects_null_for_required_fields(client, rfp):
    for field in ("title", "description", "currency", "status"):
        r = client.patch(f"/api/v1/rfps/{rfp.id}", json={field: None})
        assert r.status_code == 422, field
    assert client.get(f"/api/v1/rfps/{rfp.id}").json()["title"] == rfp.title


def test_patch_rfp_allows_clearing_optional_fields(client, rfp):
    r = client.patch(f"/api/v1/rfps/{rfp.id}", json={"budget": None, "currency": "eur"})
    assert r.status_code == 200
    assert r.json()["budget"] is None
    assert r.json()["currency"] == "EUR"


def test_compare_transport_error_is_502(client, generator, repo, rfp, vendors):
    add_proposal(repo, rfp, vendors[0], total_price=100)
    add_proposal(repo, rfp, vendors[1], total_price=120)
    generator.responses.append(ConnectionError("network down"))
    r = client.get(f"/api/v1/proposals/compare/{rfp.id}")
    assert r.status_code == 502
    assert r.json()["stage"] == "generation"
