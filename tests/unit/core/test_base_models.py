"""Unit tests for BaseModel and SoftDeleteModel, exercised through the
catalog models that inherit them."""

from __future__ import annotations

import uuid

import pytest
from freezegun import freeze_time

from django.utils import timezone

from modules.core.models import SoftDeleteManager, SoftDeleteQuerySet
from modules.products.models import Product, Vendor

pytestmark = pytest.mark.unit


class TestBaseModel:
    def test_id_is_uuid_version_7(self, acme):
        assert isinstance(acme.id, uuid.UUID)
        assert acme.id.version == 7

    def test_ids_are_time_ordered(self):
        first = Vendor.objects.create(name="First")
        second = Vendor.objects.create(name="Second")
        assert str(first.id) < str(second.id)

    def test_timestamps_set_on_create(self, acme):
        assert acme.created_at is not None
        assert acme.updated_at is not None

    def test_updated_at_changes_on_save(self, acme):
        original_created, original_updated = acme.created_at, acme.updated_at
        acme.contact_email = "orders@acme.example.com"
        acme.save()
        acme.refresh_from_db()
        assert acme.updated_at > original_updated
        assert acme.created_at == original_created

    def test_save_with_update_fields_includes_updated_at(self, acme):
        original_updated = acme.updated_at
        acme.contact_email = "orders@acme.example.com"
        acme.save(update_fields=["contact_email"])
        acme.refresh_from_db()
        assert acme.updated_at > original_updated

    def test_id_is_not_editable(self):
        assert Product._meta.get_field("id").editable is False


class TestSoftDeleteModel:
    def test_new_product_is_not_deleted(self, make_product):
        product = make_product()
        assert product.is_deleted is False
        assert product.deleted_at is None

    def test_delete_stamps_deleted_at(self, make_product):
        product = make_product()
        result = product.delete()
        product.refresh_from_db()
        assert product.is_deleted is True
        assert result == (1, {"products.Product": 1})

    def test_second_delete_is_noop(self, make_product):
        product = make_product()
        product.delete()
        assert product.delete() == (0, {})

    def test_deleted_rows_stay_in_objects_but_not_alive(self, make_product):
        kept, gone = make_product(), make_product()
        gone.delete()
        assert Product.objects.filter(pk=gone.pk).exists()
        alive = Product.objects.alive()
        assert alive.filter(pk=kept.pk).exists()
        assert not alive.filter(pk=gone.pk).exists()

    @freeze_time("2025-06-15 12:00:00")
    def test_delete_records_exact_timestamp(self, make_product):
        product = make_product()
        product.delete()
        product.refresh_from_db()
        assert product.deleted_at == timezone.now()


class TestSoftDeleteQuerySet:
    def test_bulk_delete_skips_already_deleted(self, make_product):
        a, b = make_product(), make_product()
        a.delete()
        count, details = Product.objects.filter(pk__in=[a.pk, b.pk]).delete()
        assert count == 1
        assert details == {"products.Product": 1}
        b.refresh_from_db()
        assert b.is_deleted is True

    def test_bulk_delete_updates_updated_at(self, make_product):
        product = make_product()
        original_updated = product.updated_at
        Product.objects.filter(pk=product.pk).delete()
        product.refresh_from_db()
        assert product.updated_at > original_updated

    def test_manager_and_queryset_types(self):
        assert isinstance(Vendor.objects, SoftDeleteManager)
        assert isinstance(Product.objects.all(), SoftDeleteQuerySet)
