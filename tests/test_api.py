import io
import zipfile

from listing_studio.models import SourceImage


API = "/api/v1"


def _headers(user):
    return {"X-User-Id": str(user.id)}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_actor_header_required(client):
    response = client.post(f"{API}/products", json={"title": "Lamp"})

    assert response.status_code == 401
    assert response.json()["code"] == "authentication_error"


def test_unknown_actor_rejected(client):
    response = client.post(
        f"{API}/products",
        json={"title": "Lamp"},
        headers={"X-User-Id": "6b1f3c1e-0000-4000-8000-000000000000"},
    )
    assert response.status_code == 401


def test_create_and_get_product(client, user):
    created = client.post(
        f"{API}/products",
        json={"title": "Lamp", "asin": "B0LAMP0001", "metadata": {"sku": "L-1"}},
        headers=_headers(user),
    )
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "NOT_STARTED"
    assert body["metadata"] == {"sku": "L-1"}

    fetched = client.get(f"{API}/products/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["asin"] == "B0LAMP0001"


def test_not_found_envelope(client):
    response = client.get(f"{API}/products/6b1f3c1e-0000-4000-8000-000000000000")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"
    assert "message" in response.json()


def test_request_validation_envelope(client, user):
    response = client.post(f"{API}/products", json={"category": "x"}, headers=_headers(user))

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"][0]["loc"] == ["body", "title"]


def test_prompt_preview_and_override(client, user, product, image_type):
    url = f"{API}/products/{product.id}/prompts/{image_type.id}"
    assert client.get(url).json()["prompt"] == "Photo of Steel Water Bottle in Kitchen"

    response = client.put(
        f"{API}/products/{product.id}/prompt-overrides/{image_type.id}",
        json={"customPrompt": "Hero shot of {asin}"},
        headers=_headers(user),
    )
    assert response.status_code == 200
    assert client.get(url).json()["prompt"] == "Hero shot of B0TEST0001"

    response = client.delete(
        f"{API}/products/{product.id}/prompt-overrides/{image_type.id}", headers=_headers(user)
    )
    assert response.status_code == 204
    assert client.get(url).json()["prompt"] == "Photo of Steel Water Bottle in Kitchen"


def test_duplicate_asset_type_is_validation_error(client, user, image_type):
    response = client.post(
        f"{API}/asset-types",
        json={"name": "Main Image", "defaultPrompt": "Another prompt"},
        headers=_headers(user),
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
    assert len(client.get(f"{API}/asset-types", params={"kind": "IMAGE"}).json()) == 1


def test_prompt_versions(client, user, image_type):
    response = client.post(
        f"{API}/asset-types/{image_type.id}/prompt-versions",
        json={"promptText": "v2 prompt", "changeNote": "tweak"},
        headers=_headers(user),
    )
    assert response.status_code == 201
    assert response.json()["version"] == 2
    assert response.json()["is_active"] is True

    response = client.post(
        f"{API}/asset-types/{image_type.id}/prompt-versions/1/activate", headers=_headers(user)
    )
    assert response.json()["is_active"] is True

    versions = client.get(f"{API}/asset-types/{image_type.id}/prompt-versions").json()
    assert [(v["version"], v["is_active"]) for v in versions] == [(2, False), (1, True)]

    detail = client.get(f"{API}/asset-types/{image_type.id}").json()
    assert detail["active_version"]["version"] == 1
    assert detail["default_prompt"] == "Photo of {product_name} in {category}"


def test_generate_review_and_push(client, user, product, image_type, marketplace):
    generated = client.post(
        f"{API}/images/generate",
        json={"productId": str(product.id), "assetTypeId": str(image_type.id)},
        headers=_headers(user),
    )
    assert generated.status_code == 201
    image = generated.json()
    assert image["status"] == "COMPLETED"
    assert image["version"] == 1

    reviewed = client.patch(
        f"{API}/images/{image['id']}/status",
        json={"status": "APPROVED", "comment": "Looks great"},
        headers=_headers(user),
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "APPROVED"

    detail = client.get(f"{API}/images/{image['id']}").json()
    assert detail["comments"][0]["content"] == "Looks great"
    trail = client.get(f"{API}/images/{image['id']}/activity").json()
    by_action = {entry["action"]: entry for entry in trail}
    assert set(by_action) == {"GENERATE_IMAGE", "IMAGE_APPROVED"}
    assert by_action["IMAGE_APPROVED"]["metadata"]["previous_status"] == "COMPLETED"
    assert client.get(f"{API}/products/{product.id}").json()["status"] == "COMPLETED"

    pushed = client.post(
        f"{API}/amazon/push-images",
        json={"productId": str(product.id), "images": [{"imageId": image["id"], "slot": "MAIN"}]},
        headers=_headers(user),
    )
    assert pushed.status_code == 200
    assert pushed.json()["success"] is True
    assert pushed.json()["pushes"][0]["status"] == "SUCCESS"
    assert marketplace.updates[0]["sku"] == "SKU-001"

    history = client.get(f"{API}/amazon/push-history", params={"productId": str(product.id)}).json()
    assert history["successful"] == 1

    analytics = client.get(f"{API}/analytics", params={"days": 7}).json()
    assert analytics["totals"]["images_generated"] == 1
    assert analytics["totals"]["images_approved"] == 1


def test_invalid_review_transition(client, user, product, image_type, make_asset):
    asset = make_asset(product, image_type, status="PENDING")

    response = client.patch(
        f"{API}/images/{asset.id}/status", json={"status": "APPROVED"}, headers=_headers(user)
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_generator_failure_is_bad_gateway(client, user, product, image_type, generator):
    generator.mode = "error"

    response = client.post(
        f"{API}/images/generate",
        json={"productId": str(product.id), "assetTypeId": str(image_type.id)},
        headers=_headers(user),
    )

    assert response.status_code == 502
    assert response.json()["details"]["service"] == "generator"


def test_video_generation(client, user, product, video_type):
    response = client.post(
        f"{API}/videos/generate",
        json={"productId": str(product.id), "assetTypeId": str(video_type.id), "durationSeconds": 8},
        headers=_headers(user),
    )
    assert response.status_code == 202
    assert response.json()["status"] == "GENERATING"


def test_jobs(client, user, product, image_type):
    created = client.post(
        f"{API}/jobs",
        json={"productIds": [str(product.id)], "assetTypeIds": [str(image_type.id)], "priority": 4},
        headers=_headers(user),
    )
    assert created.status_code == 201
    assert created.json()["total_images"] == 1

    jobs = client.get(f"{API}/jobs").json()
    assert [job["id"] for job in jobs] == [created.json()["id"]]
    assert client.get(f"{API}/jobs/{created.json()['id']}").json()["status"] == "QUEUED"


def test_templates_crud_and_preview(client, user, product):
    created = client.post(
        f"{API}/templates",
        json={
            "name": "Flat lay",
            "promptText": "{{item_name}} flat lay on {{surface}}",
            "category": "image",
            "variables": [
                {"name": "item_name", "type": "AUTO", "autoFillSource": "product.title"},
                {"name": "surface", "displayName": "Surface", "type": "DROPDOWN", "options": ["linen", "marble"]},
            ],
        },
        headers=_headers(user),
    )
    assert created.status_code == 201
    template = created.json()
    assert [v["type"] for v in template["variables"]] == ["AUTO", "DROPDOWN"]

    preview = client.post(
        f"{API}/templates/{template['id']}/preview",
        json={"variables": {"surface": "marble"}, "productId": str(product.id)},
    ).json()
    assert preview["renderedPrompt"] == "Steel Water Bottle flat lay on marble"
    assert preview["missingVariables"] == []

    bad = client.post(f"{API}/templates/{template['id']}/preview", json={"variables": {"surface": "sand"}})
    assert bad.status_code == 422

    copy = client.post(f"{API}/templates/{template['id']}/duplicate", headers=_headers(user)).json()
    assert copy["name"] == "Flat lay (Copy)"

    updated = client.put(
        f"{API}/templates/{copy['id']}", json={"name": "Flat lay dark", "order": 3}, headers=_headers(user)
    ).json()
    assert (updated["name"], updated["order"], len(updated["variables"])) == ("Flat lay dark", 3, 2)

    assert client.delete(f"{API}/templates/{copy['id']}", headers=_headers(user)).json()["is_active"] is False
    names = [t["name"] for t in client.get(f"{API}/templates", params={"category": "image"}).json()]
    assert names == ["Flat lay"]


def test_generate_with_template_missing_variables(client, user, product, image_type):
    template = client.post(
        f"{API}/templates",
        json={"name": "Scene", "promptText": "{{scene}}", "variables": [{"name": "scene", "displayName": "Scene"}]},
        headers=_headers(user),
    ).json()

    response = client.post(
        f"{API}/images/generate",
        json={"productId": str(product.id), "assetTypeId": str(image_type.id), "templateId": template["id"]},
        headers=_headers(user),
    )

    assert response.status_code == 422
    assert response.json()["details"]["missingVariables"] == ["Scene"]


def test_source_image_mapping_endpoints(client, db, user, product, image_type):
    image = SourceImage(product_id=product.id, variant="PT03", image_order=3, amazon_image_url="https://m/3.jpg")
    db.add(image)
    db.commit()
    url = f"{API}/asset-types/{image_type.id}/source-image-mapping"

    assert client.get(url, params={"productId": str(product.id)}).json()["sourceImage"] is None
    saved = client.post(
        url, json={"productId": str(product.id), "sourceImageId": str(image.id)}, headers=_headers(user)
    )
    assert saved.status_code == 200
    assert saved.json()["sourceImage"]["variant"] == "PT03"
    assert client.get(url, params={"productId": str(product.id)}).json()["sourceImage"]["id"] == str(image.id)


def test_variant_job_endpoint(client, db, user, product, image_type):
    db.add(SourceImage(product_id=product.id, variant="MAIN", image_order=0, amazon_image_url="https://m/1.jpg"))
    db.commit()

    created = client.post(
        f"{API}/jobs/by-variant",
        json={"productIds": [str(product.id)], "variant": "MAIN", "assetTypeId": str(image_type.id)},
        headers=_headers(user),
    )
    assert created.status_code == 201
    assert created.json()["params"]["variant"] == "MAIN"

    none_eligible = client.post(
        f"{API}/jobs/by-variant",
        json={"productIds": [str(product.id)], "variant": "PT08", "assetTypeId": str(image_type.id)},
        headers=_headers(user),
    )
    assert none_eligible.status_code == 422


def test_image_and_zip_download(client, db, user, product, image_type, storage):
    storage.store(b"source-bytes", "sources/main.jpg")
    db.add(SourceImage(product_id=product.id, variant="MAIN", image_order=0, local_file_path="sources/main.jpg"))
    db.commit()
    image = client.post(
        f"{API}/images/generate",
        json={"productId": str(product.id), "assetTypeId": str(image_type.id)},
        headers=_headers(user),
    ).json()

    single = client.get(f"{API}/images/{image['id']}/download")
    assert single.status_code == 200
    assert single.headers["content-type"] == "image/png"
    assert 'filename="B0TEST0001_main_image_v1.png"' in single.headers["content-disposition"]
    assert single.content.startswith(b"\x89PNG")

    archive = client.post(f"{API}/download/zip", json={"productIds": [str(product.id)]})
    assert archive.status_code == 200
    assert archive.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(archive.content)) as zipped:
        assert sorted(zipped.namelist()) == ["B0TEST0001/B0TEST0001_main_image_v1.png", "B0TEST0001/source-MAIN.jpg"]
        assert zipped.read("B0TEST0001/source-MAIN.jpg") == b"source-bytes"

    generated_only = client.post(f"{API}/download/zip", json={"productIds": [str(product.id)], "scope": "generated"})
    with zipfile.ZipFile(io.BytesIO(generated_only.content)) as zipped:
        assert zipped.namelist() == ["B0TEST0001/B0TEST0001_main_image_v1.png"]


def test_download_without_stored_file(client, product, image_type, make_asset):
    asset = make_asset(product, image_type, status="PENDING", storage_path=None)

    assert client.get(f"{API}/images/{asset.id}/download").status_code == 404
    assert client.post(f"{API}/download/zip", json={"productIds": [str(product.id)]}).status_code == 404
