from datetime import timedelta

import pytest

from tinkstudio.domain.giftcards.repository import GiftCardRepository
from tinkstudio.domain.giftcards.schemas import ClaimRequest
from tinkstudio.domain.giftcards.service import GiftCardService
from tinkstudio.errors import CodeGenerationExhausted
from tinkstudio.models import Customer, GiftCard, GiftCardStatus
from tinkstudio.shared.datetime_utils import utcnow

ADMIN_URL = "/api/admin/gift-cards"
PUBLIC_URL = "/api/gift-cards"

HOLDER = {"firstName": "Mario", "lastName": "Rossi", "phone": "3331112222"}


def create_draft(client, admin_headers, **payload):
    payload.setdefault("amount", 50)
    response = client.post(f"{ADMIN_URL}/drafts", json=payload, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_draft_claim_end_to_end(client, admin_headers, db):
    draft = create_draft(client, admin_headers, amount=50)
    assert draft["claim_url"].endswith(f"/gift/claim/{draft['claim_token']}")
    assert draft["currency"] == "EUR"

    summary = client.get(f"{PUBLIC_URL}/claim/{draft['claim_token']}")
    assert summary.status_code == 200
    assert summary.json()["amount"] == 50.0

    response = client.post(
        f"{PUBLIC_URL}/claim/{draft['claim_token']}/finalize",
        json={**HOLDER, "dedication": "Buon compleanno!"},
    )

    assert response.status_code == 200
    claimed = response.json()
    assert claimed["status"] == "active"
    assert claimed["code"]
    assert draft["draft_id"] in claimed["landing_url"]
    assert claimed["holder"]["phone"] == "3331112222"
    assert claimed["dedication"] == "Buon compleanno!"

    card = db.query(GiftCard).filter(GiftCard.id == draft["draft_id"]).one()
    assert card.claim_token is None
    assert card.claimed_by_customer_id is not None
    customer = db.query(Customer).filter(Customer.phone == "3331112222").one()
    assert customer.id == card.claimed_by_customer_id


def test_second_claim_of_same_token_is_rejected(client, admin_headers):
    token = create_draft(client, admin_headers)["claim_token"]
    first = client.post(f"{PUBLIC_URL}/claim/{token}/finalize", json=HOLDER)
    assert first.status_code == 200

    second = client.post(f"{PUBLIC_URL}/claim/{token}/finalize", json=HOLDER)
    assert second.status_code == 400
    assert client.get(f"{PUBLIC_URL}/claim/{token}").status_code == 400


def test_unknown_token_is_not_found(client):
    response = client.post(f"{PUBLIC_URL}/claim/nope/finalize", json=HOLDER)
    assert response.status_code == 404


def test_expired_token_is_gone(client, make_gift_card):
    card = make_gift_card(
        claim_token="expired-token", claim_token_expires_at=utcnow() - timedelta(minutes=1)
    )

    response = client.post(f"{PUBLIC_URL}/claim/expired-token/finalize", json=HOLDER)

    assert response.status_code == 410
    assert client.get(f"{PUBLIC_URL}/claim/expired-token").status_code == 410
    assert card.status == GiftCardStatus.DRAFT


def test_claim_requires_name_surname_and_phone(client, admin_headers):
    token = create_draft(client, admin_headers)["claim_token"]

    response = client.post(f"{PUBLIC_URL}/claim/{token}/finalize", json={"firstName": "Mario"})

    assert response.status_code == 400
    assert len(response.json()["details"]) == 2
    # still claimable
    assert client.get(f"{PUBLIC_URL}/claim/{token}").status_code == 200


@pytest.mark.parametrize("amount", [0, -10, "50", None, True])
def test_draft_rejects_bad_amounts(client, admin_headers, amount):
    response = client.post(f"{ADMIN_URL}/drafts", json={"amount": amount}, headers=admin_headers)
    assert response.status_code == 400


def test_draft_default_expiry_is_twelve_months(client, admin_headers):
    draft = create_draft(client, admin_headers, amount=75.5, currency="usd")
    assert draft["currency"] == "USD"
    assert draft["amount"] == 75.5
    assert draft["expires_at"][:4] == str(utcnow().year + 1)


def test_get_draft_reports_claim_state(client, admin_headers):
    draft = create_draft(client, admin_headers)
    url = f"{ADMIN_URL}/drafts/{draft['draft_id']}"

    assert client.get(url, headers=admin_headers).json()["claim_token_used"] is False
    client.post(f"{PUBLIC_URL}/claim/{draft['claim_token']}/finalize", json=HOLDER)
    assert client.get(url, headers=admin_headers).json()["claim_token_used"] is True


def test_list_drafts_only_returns_drafts(client, admin_headers, make_gift_card):
    draft = make_gift_card()
    make_gift_card(status=GiftCardStatus.ACTIVE, code="ACTIVE01")

    response = client.get(f"{ADMIN_URL}/drafts", headers=admin_headers)

    assert [c["id"] for c in response.json()["drafts"]] == [draft.id]


def test_complete_card_is_active_with_code(client, admin_headers, db):
    response = client.post(
        f"{ADMIN_URL}/complete",
        json={"amount": 100, "first_name": "Anna", "last_name": "Bianchi", "phone": "3339998888"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "active"
    assert body["code"]
    assert body["verify_url"].endswith(f"code={body['code']}")
    assert db.query(Customer).filter(Customer.phone == "3339998888").count() == 1


def test_complete_card_requires_identity(client, admin_headers):
    response = client.post(f"{ADMIN_URL}/complete", json={"amount": 100}, headers=admin_headers)
    assert response.status_code == 400


def test_mark_used_only_once(client, admin_headers, make_gift_card):
    make_gift_card(status=GiftCardStatus.ACTIVE, code="ABCD1234", first_name="Mario")

    response = client.post(
        f"{ADMIN_URL}/mark-used", json={"code": " abcd1234 "}, headers=admin_headers
    )
    assert response.status_code == 200
    card = response.json()["gift_card"]
    assert card["status"] == "used"
    assert card["used_at"]
    assert card["holder"]["first_name"] == "Mario"

    again = client.post(f"{ADMIN_URL}/mark-used", json={"code": "ABCD1234"}, headers=admin_headers)
    assert again.status_code == 404


def test_mark_used_rejects_drafts(client, admin_headers, make_gift_card):
    make_gift_card(code="DRAFT001")
    response = client.post(f"{ADMIN_URL}/mark-used", json={"code": "DRAFT001"}, headers=admin_headers)
    assert response.status_code == 404


def test_verify_never_exposes_holder(client, make_gift_card):
    make_gift_card(
        status=GiftCardStatus.ACTIVE,
        code="VERIFY01",
        first_name="Mario",
        last_name="Rossi",
        phone="3331112222",
        email="mario@example.com",
    )

    response = client.get(f"{PUBLIC_URL}/verify/verify01")

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert body["status"] == "active"
    for field in ("first_name", "last_name", "phone", "email"):
        assert field not in body
    assert "Mario" not in response.text


def test_verify_reports_date_expiry_separately(client, make_gift_card):
    make_gift_card(
        status=GiftCardStatus.ACTIVE, code="OLDCARD1", expires_at=utcnow() - timedelta(days=1)
    )

    body = client.get(f"{PUBLIC_URL}/verify/OLDCARD1").json()

    assert body["valid"] is True
    assert body["expired_by_date"] is True


def test_verify_unknown_code(client):
    assert client.get(f"{PUBLIC_URL}/verify/NOTFOUND").status_code == 404


def test_renew_reactivates_expired_claimed_card(client, admin_headers, make_gift_card):
    claimed = make_gift_card(status=GiftCardStatus.EXPIRED, claimed_at=utcnow(), code="RENEW001")
    unclaimed = make_gift_card(status=GiftCardStatus.EXPIRED)

    first = client.put(f"{ADMIN_URL}/{claimed.id}/renew", headers=admin_headers)
    second = client.put(f"{ADMIN_URL}/{unclaimed.id}/renew", headers=admin_headers)

    assert first.json()["status"] == "active"
    assert second.json()["status"] == "draft"
    assert first.json()["expires_at"][:4] == str(utcnow().year + 1)


def test_delete_refuses_expired_cards(client, admin_headers, make_gift_card):
    expired = make_gift_card(status=GiftCardStatus.EXPIRED)
    active = make_gift_card(status=GiftCardStatus.ACTIVE, code="DELETE01")

    refused = client.delete(f"{ADMIN_URL}/{expired.id}", headers=admin_headers)
    assert refused.status_code == 400
    assert refused.json()["current_status"] == "expired"

    deleted = client.delete(f"{ADMIN_URL}/{active.id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json()["deleted_card"]["code"] == "DELETE01"
    assert client.delete(f"{ADMIN_URL}/{active.id}", headers=admin_headers).status_code == 404


def test_stats(client, admin_headers, make_gift_card):
    make_gift_card(amount=50)
    make_gift_card(status=GiftCardStatus.ACTIVE, amount=100, code="STATS001")
    make_gift_card(status=GiftCardStatus.USED, amount=30, code="STATS002")
    make_gift_card(status=GiftCardStatus.EXPIRED, amount=20)

    stats = client.get(f"{ADMIN_URL}/stats", headers=admin_headers).json()

    assert stats["total"] == 4
    assert stats["draft"] == stats["active"] == stats["used"] == stats["expired"] == 1
    assert stats["total_revenue"] == 180.0
    assert stats["pending_revenue"] == 50.0
    assert stats["used_revenue"] == 30.0


def test_landing_page(client, make_gift_card):
    card = make_gift_card(
        status=GiftCardStatus.ACTIVE, code="LAND0001", first_name="Mario", dedication="Auguri"
    )

    body = client.get(f"{PUBLIC_URL}/landing/{card.id}").json()

    assert body["code"] == "LAND0001"
    assert body["dedication"] == "Auguri"
    assert client.get(f"{PUBLIC_URL}/landing/missing").status_code == 404


def test_admin_gift_card_routes_require_token(client):
    assert client.get(ADMIN_URL).status_code == 401
    assert client.post(f"{ADMIN_URL}/drafts", json={"amount": 50}).status_code == 401


def test_verify_draft_hides_card_details(client, make_gift_card):
    make_gift_card(code="DRAFTV01", amount=80)

    body = client.get(f"{PUBLIC_URL}/verify/DRAFTV01").json()

    assert body["valid"] is False
    assert body["status"] == "draft"
    for field in ("amount", "currency", "expires_at"):
        assert field not in body


@pytest.fixture
def every_code_taken(monkeypatch):
    monkeypatch.setattr(GiftCardRepository, "code_exists", staticmethod(lambda db, code: True))


def test_exhausted_code_generation_rolls_back_claim(db, make_gift_card, every_code_taken):
    card = make_gift_card(claim_token="exhaust-token")

    with pytest.raises(CodeGenerationExhausted):
        GiftCardService(db).claim("exhaust-token", ClaimRequest.model_validate(HOLDER))

    db.expire_all()
    assert card.status == GiftCardStatus.DRAFT
    assert card.claim_token == "exhaust-token"
    assert card.code is None
    assert db.query(Customer).count() == 0


def test_exhausted_code_generation_is_a_generic_server_error(
    client, db, make_gift_card, every_code_taken
):
    card = make_gift_card(claim_token="exhaust-api")

    response = client.post(f"{PUBLIC_URL}/claim/exhaust-api/finalize", json=HOLDER)

    assert response.status_code == 500
    assert response.json() == {"error": "Errore interno del server"}
    db.expire_all()
    assert card.status == GiftCardStatus.DRAFT
