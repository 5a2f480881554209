from conftest import auth

from appointmenthub.models import ROLE_ADMIN, Tenant, User

REGISTRATION = {
    "name": "Bright Smiles",
    "slug": "bright-smiles",
    "businessName": "Bright Smiles Dental",
    "businessEmail": "desk@brightsmiles.example.com",
    "adminName": "Dana Dentist",
    "adminEmail": "Dana@BrightSmiles.example.com",
    "adminPassword": "toothpaste",
}


def test_register_creates_tenant_settings_and_admin(client, db):
    response = client.post("/api/tenants/register", json=REGISTRATION)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["tenant"]["slug"] == "bright-smiles"
    assert body["tenant"]["domain"].startswith("bright-smiles.")

    tenant = db.query(Tenant).filter(Tenant.slug == "bright-smiles").one()
    assert tenant.settings.business_name == "Bright Smiles Dental"
    assert tenant.settings.booking_settings["requireConfirmation"] is False
    assert tenant.settings.working_hours["monday"]["enabled"] is True

    admin = db.query(User).filter(User.tenant_id == tenant.id).one()
    assert admin.role == ROLE_ADMIN
    assert admin.email == "dana@brightsmiles.example.com"
    assert admin.password_hash and admin.password_hash != "toothpaste"


def test_registered_admin_can_log_in(client):
    client.post("/api/tenants/register", json=REGISTRATION)

    response = client.post(
        "/api/auth/login",
        json={"email": "dana@brightsmiles.example.com", "password": "toothpaste", "tenantSlug": "bright-smiles"},
    )
    assert response.status_code == 200
    assert response.json()["user"]["role"] == ROLE_ADMIN


def test_register_rejects_taken_slug(client, seed):
    response = client.post("/api/tenants/register", json={**REGISTRATION, "slug": "acme"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Subdomain is already taken"


def test_register_rejects_malformed_slug(client, db):
    response = client.post("/api/tenants/register", json={**REGISTRATION, "slug": "No Spaces!"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid data"
    assert db.query(Tenant).count() == 0


def test_slug_availability(client, seed):
    check = lambda slug: client.post("/api/tenants/check-availability", json={"slug": slug}).json()  # noqa: E731

    assert check("acme") == {"available": False, "slug": "acme"}
    assert check("fresh-cuts") == {"available": True, "slug": "fresh-cuts"}
    assert check("ab")["available"] is False
    assert check("admin") == {"available": False, "error": "This subdomain is reserved"}


def test_resolve_by_slug_and_domain(client, seed):
    by_slug = client.get("/api/tenants/resolve", params={"slug": "acme"})
    by_domain = client.post("/api/tenants/resolve", json={"domain": seed.tenant.domain})

    assert by_slug.status_code == 200
    assert by_slug.json()["id"] == seed.tenant.id
    assert by_slug.json()["settings"]["businessName"] == "Acme Studio"
    assert by_domain.json()["slug"] == "acme"


def test_resolve_errors(client, seed):
    assert client.get("/api/tenants/resolve").status_code == 400

    missing = client.get("/api/tenants/resolve", params={"slug": "nobody"})
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Tenant not found for slug: nobody"


def test_admin_lists_tenants_with_counts(client, seed):
    response = client.get("/api/tenants", headers=auth(seed.admin))

    assert response.status_code == 200
    [tenant] = response.json()
    assert tenant["slug"] == "acme"
    assert tenant["counts"]["users"] == 3
    assert tenant["counts"]["services"] == 1


def test_non_admins_cannot_list_tenants(client, seed):
    assert client.get("/api/tenants", headers=auth(seed.client)).status_code == 403
    assert client.get("/api/tenants").status_code == 401


def test_members_only_see_their_own_tenant(client, seed, other_seed):
    own = client.get(f"/api/tenants/{seed.tenant.id}", headers=auth(seed.provider))
    foreign = client.get(f"/api/tenants/{other_seed.tenant.id}", headers=auth(seed.provider))

    assert own.status_code == 200
    assert foreign.status_code == 403
    assert foreign.json()["detail"] == "Access denied"


def test_update_settings(client, db, seed):
    response = client.put(
        f"/api/tenants/{seed.tenant.id}",
        headers=auth(seed.admin),
        json={"name": "Acme Salon", "settings": {"timeZone": "Europe/Berlin", "commissionRate": 0.1}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Acme Salon"
    assert body["settings"]["timeZone"] == "Europe/Berlin"
    assert body["settings"]["commissionRate"] == 0.1
    # Untouched settings survive a partial update
    assert body["settings"]["businessName"] == "Acme Studio"


def test_tenant_with_members_cannot_be_deleted(client, seed):
    response = client.delete(f"/api/tenants/{seed.tenant.id}", headers=auth(seed.admin))

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete tenant with existing users or appointments"
