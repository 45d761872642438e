import io
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from swiftbites.catalog import CatalogService
from swiftbites.errors import NotFoundError, PersistenceError, ValidationError
from swiftbites.images import ImageStore

BASE = "https://swiftbites-images.s3.ap-south-1.amazonaws.com/"


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "DeleteObject")


@pytest.fixture
def s3():
    return MagicMock()


@pytest.fixture
def image_store(s3):
    return ImageStore(bucket="swiftbites-images", region="ap-south-1", client=s3)


@pytest.fixture
def catalog(menu_store, images):
    return CatalogService(menu_store, images)


def upload(name="Paneer Roll.webp"):
    return io.BytesIO(b"img"), name, "image/webp"


@pytest.mark.parametrize("url,key", [
    (BASE + "menu-items/17-Veg%20Burger.webp", "menu-items/17-Veg%20Burger.webp"),
    ("images/Campa.webp", "images/Campa.webp"),
    ("menu-items/1-Maaza.jpg", "menu-items/1-Maaza.jpg"),
    ("https://elsewhere.example.com/pic.png", None),
    (None, None),
])
def test_extract_key(image_store, url, key):
    assert image_store.extract_key(url) == key


def test_delete_missing_object_is_not_an_error(image_store, s3):
    s3.delete_object.side_effect = client_error("NoSuchKey")

    assert image_store.delete("images/Ghost.webp") is True
    s3.delete_object.assert_called_once_with(Bucket="swiftbites-images", Key="images/Ghost.webp")


def test_delete_other_failures_are_logged_and_swallowed(image_store, s3, caplog):
    s3.delete_object.side_effect = client_error("AccessDenied")

    assert image_store.delete("images/Campa.webp") is False
    assert "AccessDenied" in caplog.text


def test_delete_unrecognized_url_skips_s3(image_store, s3):
    assert image_store.delete("https://elsewhere.example.com/pic.png") is True
    s3.delete_object.assert_not_called()


def test_upload_returns_public_url(image_store, s3):
    url = image_store.upload(io.BytesIO(b"img"), "Veg Burger.webp", "image/webp")

    assert url.startswith(BASE + "menu-items/")
    assert url.endswith("-Veg Burger.webp")
    _, bucket, key = s3.upload_fileobj.call_args.args
    assert bucket == "swiftbites-images"
    assert url == BASE + key
    assert s3.upload_fileobj.call_args.kwargs["ExtraArgs"] == {"ACL": "public-read", "ContentType": "image/webp"}


def test_deleting_menu_item_with_missing_image_succeeds(menu_store, image_store, s3):
    s3.delete_object.side_effect = client_error("NoSuchKey")
    catalog = CatalogService(menu_store, image_store)

    deleted = catalog.delete_item(2)

    assert deleted["name"] == "Campa"
    assert 2 not in menu_store.rows


def test_delete_unknown_item(catalog, images):
    with pytest.raises(NotFoundError):
        catalog.delete_item(404)
    assert images.deleted == []


def test_create_requires_image(catalog, images):
    with pytest.raises(ValidationError):
        catalog.create_item("Paneer Roll", "129", None)
    assert images.uploaded == []


def test_create_stores_uploaded_url(catalog, menu_store):
    item = catalog.create_item("Paneer Roll", "129", upload())

    assert item["image"].endswith("Paneer Roll.webp")
    assert menu_store.rows[item["id"]]["price"] == Decimal("129")


def test_failed_insert_removes_orphaned_upload(catalog, menu_store, images):
    menu_store.fail_writes = True

    with pytest.raises(PersistenceError):
        catalog.create_item("Paneer Roll", "129", upload())
    assert images.deleted == images.uploaded


def test_replacing_image_deletes_old_one_after_update(menu_store, images):
    events = []
    original_update = menu_store.update_item

    def update_item(*args):
        events.append("db-update")
        return original_update(*args)

    menu_store.update_item = update_item
    images.delete = lambda url: events.append(("delete", url)) or True
    catalog = CatalogService(menu_store, images)

    updated = catalog.update_item(1, "Veg Burger", "159", upload=upload("Veg Burger v2.webp"))

    assert updated["image"].endswith("Veg Burger v2.webp")
    assert events == ["db-update", ("delete", "menu-items/1-Veg Burger.webp")]


def test_clear_image(catalog, menu_store, images):
    updated = catalog.update_item(1, "Veg Burger", "149", clear_image=True)

    assert updated["image"] is None
    assert images.deleted == ["menu-items/1-Veg Burger.webp"]


def test_update_without_image_keeps_existing(catalog, images):
    updated = catalog.update_item(1, "Veg Burger Deluxe", "179")

    assert updated["image"] == "menu-items/1-Veg Burger.webp"
    assert images.deleted == []


def test_failed_update_keeps_old_image(catalog, menu_store, images):
    menu_store.fail_writes = True

    with pytest.raises(PersistenceError):
        catalog.update_item(1, "Veg Burger", "149", upload=upload())

    assert "menu-items/1-Veg Burger.webp" not in images.deleted
    assert images.deleted == images.uploaded


def test_update_unknown_item(catalog, images):
    with pytest.raises(NotFoundError):
        catalog.update_item(404, "Nope", "1", upload=upload())
    assert images.uploaded == []


def test_invalid_price_rejected(catalog):
    with pytest.raises(ValidationError):
        catalog.create_item("Paneer Roll", "-5", upload())


def test_update_requires_name(catalog, menu_store, images):
    with pytest.raises(ValidationError):
        catalog.update_item(1, "", "149", upload=upload())

    assert menu_store.rows[1]["name"] == "Veg Burger"
    assert images.uploaded == []
