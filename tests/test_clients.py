"""Client, account and manager-assignment endpoint tests."""

from agency_api.db.models import Account, Campaign, ChangeLogEntry, Notification, TimeEntry, Website


class TestClientCrud:
    def test_create_derives_slug_from_name(self, client, owner_headers):
        response = client.post("/api/v1/clients", json={"name": "Acme Corp"}, headers=owner_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["slug"] == "acme-corp"
        assert body["status"] == "active"

    def test_explicit_slug_is_normalized(self, client, owner_headers):
        response = client.post(
            "/api/v1/clients", json={"name": "Acme", "slug": "Acme Corp/EU"}, headers=owner_headers
        )
        assert response.json()["slug"] == "acme-corp-eu"

    def test_slug_maps_every_character_outside_the_set(self, client, owner_headers):
        response = client.post("/api/v1/clients", json={"name": " Acme"}, headers=owner_headers)
        assert response.json()["slug"] == "-acme"

    def test_empty_slug_on_update_rejected(self, client, factory, owner_headers):
        acme = factory.client("Acme")
        response = client.put(f"/api/v1/clients/{acme.id}", json={"slug": ""}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Slug cannot be empty"

    def test_duplicate_slug_conflicts(self, client, owner_headers):
        client.post("/api/v1/clients", json={"name": "Acme Corp"}, headers=owner_headers)
        response = client.post("/api/v1/clients", json={"name": "ACME corp"}, headers=owner_headers)

        assert response.status_code == 409

    def test_update_slug_conflict(self, client, factory, owner_headers):
        first = client.post("/api/v1/clients", json={"name": "First"}, headers=owner_headers).json()
        client.post("/api/v1/clients", json={"name": "Second"}, headers=owner_headers)

        response = client.put(f"/api/v1/clients/{first['id']}", json={"slug": "second"}, headers=owner_headers)
        assert response.status_code == 409

    def test_invalid_status_rejected(self, client, owner_headers):
        response = client.post("/api/v1/clients", json={"name": "X", "status": "archived"}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "status must be one of: active, inactive"

    def test_list_includes_counts(self, client, factory, owner_headers):
        acme = factory.client("Acme")
        campaign = factory.campaign_tree(acme)
        factory.campaign(campaign.website, name="Second")

        rows = client.get("/api/v1/clients", headers=owner_headers).json()

        assert len(rows) == 1
        assert rows[0]["account_count"] == 1
        assert rows[0]["website_count"] == 1
        assert rows[0]["campaign_count"] == 2

    def test_delete_cascades_everything_beneath(self, client, db_session, factory, owner, owner_headers):
        acme = factory.client("Acme")
        campaign = factory.campaign_tree(acme)
        factory.time_entry(owner, campaign)
        client.post(
            "/api/v1/change-log",
            json={"entity_type": "campaign", "entity_id": campaign.id, "title": "Kickoff", "body": "Started"},
            headers=owner_headers,
        )

        response = client.delete(f"/api/v1/clients/{acme.id}", headers=owner_headers)

        assert response.status_code == 204
        for model in (Account, Website, Campaign, TimeEntry, ChangeLogEntry):
            assert db_session.query(model).count() == 0, model.__name__

    def test_manager_cannot_create_or_delete(self, client, factory, headers_for):
        manager = factory.user("manager")
        acme = factory.client("Acme")
        factory.assign_manager(acme, manager)
        headers = headers_for(manager)

        assert client.post("/api/v1/clients", json={"name": "New"}, headers=headers).status_code == 403
        assert client.delete(f"/api/v1/clients/{acme.id}", headers=headers).status_code == 403


class TestClientScope:
    def test_manager_lists_only_assigned(self, client, factory, headers_for):
        manager = factory.user("manager")
        mine = factory.client("Mine")
        factory.client("Not Mine")
        factory.assign_manager(mine, manager)

        rows = client.get("/api/v1/clients", headers=headers_for(manager)).json()
        assert [row["id"] for row in rows] == [mine.id]

    def test_manager_gets_404_for_unassigned(self, client, factory, headers_for):
        manager = factory.user("manager")
        other = factory.client("Not Mine")

        response = client.get(f"/api/v1/clients/{other.id}", headers=headers_for(manager))
        assert response.status_code == 404
        assert response.json()["detail"] == "Client not found"

    def test_portal_user_sees_own_client_only(self, client, factory, headers_for):
        own = factory.client("Own")
        other = factory.client("Other")
        portal = factory.user("tenant", client=own)
        headers = headers_for(portal)

        assert client.get(f"/api/v1/clients/{own.id}", headers=headers).status_code == 200
        assert client.get(f"/api/v1/clients/{other.id}", headers=headers).status_code == 404
        assert client.get("/api/v1/clients", headers=headers).status_code == 403

    def test_contributor_cannot_list_clients(self, client, factory, headers_for):
        worker = factory.user("contributor")
        assert client.get("/api/v1/clients", headers=headers_for(worker)).status_code == 403


class TestManagerAssignment:
    def test_assign_is_idempotent_and_notifies_once(self, client, db_session, factory, owner_headers):
        manager = factory.user("manager")
        acme = factory.client("Acme Corp")
        url = f"/api/v1/clients/{acme.id}/assign-manager"

        first = client.post(url, json={"user_id": manager.id}, headers=owner_headers)
        second = client.post(url, json={"user_id": manager.id}, headers=owner_headers)

        assert first.json() == {"message": "Manager assigned"}
        assert second.json() == {"message": "Manager already assigned"}
        notes = db_session.query(Notification).filter(Notification.user_id == manager.id).all()
        assert [n.message for n in notes] == ["You've been assigned to manage Acme Corp"]
        assert notes[0].type == "manager_assigned"

        detail = client.get(f"/api/v1/clients/{acme.id}", headers=owner_headers).json()
        assert [m["id"] for m in detail["managers"]] == [manager.id]

    def test_only_managers_can_be_assigned(self, client, factory, owner_headers):
        worker = factory.user("contributor")
        acme = factory.client("Acme")

        response = client.post(
            f"/api/v1/clients/{acme.id}/assign-manager", json={"user_id": worker.id}, headers=owner_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User must have the manager role"

    def test_remove_manager_revokes_access(self, client, factory, owner_headers, headers_for):
        manager = factory.user("manager")
        acme = factory.client("Acme")
        factory.assign_manager(acme, manager)
        headers = headers_for(manager)
        assert client.get(f"/api/v1/clients/{acme.id}", headers=headers).status_code == 200

        removed = client.delete(f"/api/v1/clients/{acme.id}/remove-manager/{manager.id}", headers=owner_headers)

        assert removed.status_code == 200
        assert removed.json() == {"message": "Manager removed successfully"}
        assert client.get(f"/api/v1/clients/{acme.id}", headers=headers).status_code == 404


class TestAccounts:
    def test_manager_creates_account_on_assigned_client(self, client, factory, headers_for):
        manager = factory.user("manager")
        acme = factory.client("Acme")
        factory.assign_manager(acme, manager)

        response = client.post(
            f"/api/v1/clients/{acme.id}/accounts", json={"name": "Google Ads"}, headers=headers_for(manager)
        )

        assert response.status_code == 201
        assert response.json()["client_id"] == acme.id

    def test_manager_cannot_create_account_elsewhere(self, client, factory, headers_for):
        manager = factory.user("manager")
        other = factory.client("Other")

        response = client.post(
            f"/api/v1/clients/{other.id}/accounts", json={"name": "Google Ads"}, headers=headers_for(manager)
        )
        assert response.status_code == 404

    def test_website_inherits_client(self, client, factory, owner_headers):
        account = factory.account(factory.client("Acme"))

        response = client.post(
            f"/api/v1/accounts/{account.id}/websites",
            json={"name": "Shop", "url": "https://shop.test"},
            headers=owner_headers,
        )

        assert response.status_code == 201
        assert response.json()["client_id"] == account.client_id
