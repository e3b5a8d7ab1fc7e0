import json
from decimal import Decimal

import pytest

from refi_calc.storage import DEFAULT_STORE_KEY, MemoryStore, default_offers, offer_to_dict
from refi_calc_web.app import create_app
from refi_calc_web.comparison_store import SqlKeyValueStore


@pytest.fixture
def client():
    app = create_app(store=MemoryStore())
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


class TestIndex:
    def test_shows_default_offers(self, client):
        response = client.get("/")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "Krungsri (current)" in page
        assert "GSB (Q3 promotion)" in page
        assert "15,700.00" in page

    def test_add_offer(self, client):
        response = client.post("/offers")
        assert response.status_code == 302
        assert "New option #3" in client.get("/").get_data(as_text=True)

    def test_update_offer(self, client):
        response = client.post(
            "/offers/1",
            data={"name": "Bank X", "principal": "2,000,000", "rate1": "2.1", "monthly_override": "", "cost__MRTA": "30,000"},
        )
        assert response.status_code == 302
        page = client.get("/").get_data(as_text=True)
        assert "Bank X" in page
        assert "30,000.00" in page

    def test_update_rejected(self, client):
        response = client.post("/offers/1", data={"principal": "lots"})
        assert response.status_code == 400
        assert "Invalid amount" in response.get_data(as_text=True)

    def test_update_validation_error(self, client):
        response = client.post("/offers/0", data={"term_years": "0"})
        assert response.status_code == 400
        assert "Term must be a positive number of months" in response.get_data(as_text=True)

    def test_update_missing_offer(self, client):
        assert client.post("/offers/5", data={"name": "X"}).status_code == 404

    def test_remove_and_reset(self, client):
        assert client.post("/offers/0/remove").status_code == 302
        assert "Krungsri (current)" not in client.get("/").get_data(as_text=True)
        assert client.post("/offers/reset").status_code == 302
        assert "Krungsri (current)" in client.get("/").get_data(as_text=True)

    def test_sessions_are_separate(self):
        app = create_app(store=MemoryStore())
        with app.test_client() as first, app.test_client() as second:
            first.post("/offers/0/remove")
            assert "Krungsri (current)" in second.get("/").get_data(as_text=True)


class TestSchedulePage:
    def test_schedule_view(self, client):
        response = client.get("/schedule/1?start=2025-01")
        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert "Schedule: GSB (Q3 promotion)" in page
        assert "Jan 2025" in page
        assert "Dec 2044" in page

    def test_missing_offer(self, client):
        assert client.get("/schedule/9").status_code == 404

    def test_principal_columns(self, client):
        page = client.get("/schedule/1?start=2025-01").get_data(as_text=True)
        assert ">Principal</th>" in page
        assert ">Total principal</th>" in page

    @pytest.mark.parametrize("path", ["/schedule/0", "/schedule/0.csv"])
    def test_invalid_stored_offer(self, path):
        store = MemoryStore()
        app = create_app(store=store)
        broken = default_offers()[0]
        broken.principal = Decimal("0")
        with app.test_client() as client:
            with client.session_transaction() as sess:
                sess["user_token"] = "fixed"
            store.set(f"{DEFAULT_STORE_KEY}:fixed", json.dumps([offer_to_dict(broken)]))
            response = client.get(path)
        assert response.status_code == 400
        assert "Principal must be positive" in response.get_data(as_text=True)

    def test_bad_start(self, client):
        assert client.get("/schedule/0?start=soon").status_code == 400

    def test_csv_download(self, client):
        response = client.get("/schedule/1.csv?start=2025-01")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert "attachment" in response.headers["Content-Disposition"]
        lines = response.get_data(as_text=True).splitlines()
        assert lines[0].startswith("Month,Installment,Rate (%)")
        assert lines[1].startswith("Jan 2025,1,1.990,")
        assert len(lines) == 241


class TestSqlKeyValueStore:
    def test_set_get_overwrite(self, tmp_path):
        store = SqlKeyValueStore(f"sqlite:///{tmp_path / 'kv.sqlite3'}")
        assert store.get("k") is None
        store.set("k", "one")
        store.set("k", "two")
        assert store.get("k") == "two"

    def test_app_with_database(self, tmp_path):
        store = SqlKeyValueStore(f"sqlite:///{tmp_path / 'offers.sqlite3'}")
        app = create_app(store=store)
        with app.test_client() as client:
            client.post("/offers")
            assert "New option #3" in client.get("/").get_data(as_text=True)
