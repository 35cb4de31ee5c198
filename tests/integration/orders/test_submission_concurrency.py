"""Cart-row claiming under concurrent submissions.

Two submissions for the same buyer target overlapping cart rows at the
same time.  Whatever the interleaving, every row ends up in exactly one
batch; the losing submission either claims fewer rows or reports that
nothing was claimable.

Uses ``TransactionTestCase`` so each thread sees committed data and the
row locks behave as in production.  SQLite has no ``SELECT ... FOR UPDATE``,
so the test only runs against a database that supports it.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier
from typing import List, Optional

import django
import pytest
from django.contrib.auth import get_user_model
from django.test import TransactionTestCase, skipUnlessDBFeature

from modules.orders.constants import OrderStatus
from modules.orders.dtos import AddCartItemDTO, SubmitBatchDTO, SubmissionResult
from modules.orders.exceptions import NoClaimableCartItems
from modules.orders.models import Order, OrderBatch
from modules.orders.notifications import NullNotificationSink
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import CartService, OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration

logger = logging.getLogger(__name__)

NUM_ROWS = 4


@skipUnlessDBFeature("has_select_for_update")
class TestConcurrentSubmission(TransactionTestCase):
    def setUp(self):
        self.buyer = get_user_model().objects.create_user(
            username="racer", email="racer@example.com", password="x", first_name="Racer"
        )
        cart = CartService(OrderDjangoRepository(), ProductDjangoRepository())
        self.row_ids = []
        for i in range(NUM_ROWS):
            product = Product.objects.create(
                sku=f"RACE-{i}", name=f"Race {i}", wholesale_case_price=Decimal("5.00")
            )
            item = cart.add_item(
                AddCartItemDTO(
                    buyer_id=self.buyer.pk,
                    buyer_email=self.buyer.email,
                    product_id=product.id,
                    quantity=1,
                )
            )
            self.row_ids.append(item.id)

    def _submit(self, ids, barrier: Barrier) -> Optional[SubmissionResult]:
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            notifier=NullNotificationSink(),
        )
        dto = SubmitBatchDTO(
            buyer_id=self.buyer.pk,
            buyer_email=self.buyer.email,
            buyer_name=self.buyer.first_name,
            cart_item_ids=ids,
        )
        try:
            barrier.wait()
            return service.submit_batch(dto)
        except NoClaimableCartItems:
            logger.warning("submission found nothing to claim")
            return None
        finally:
            django.db.connections.close_all()

    def _race(self, selections: List[list]) -> List[Optional[SubmissionResult]]:
        barrier = Barrier(len(selections))
        with ThreadPoolExecutor(max_workers=len(selections)) as pool:
            futures = [pool.submit(self._submit, ids, barrier) for ids in selections]
            return [future.result() for future in futures]

    def _assert_each_row_claimed_once(self, results):
        claimed = [order.id for result in results if result for order in result.orders]
        self.assertEqual(len(claimed), len(set(claimed)), "a row was claimed twice")
        for row in Order.objects.filter(id__in=self.row_ids):
            self.assertEqual(row.status, OrderStatus.PENDING)
            self.assertIsNotNone(row.batch_id)
        self.assertEqual(set(claimed), set(self.row_ids))

    def test_identical_selections(self):
        results = self._race([self.row_ids, self.row_ids])

        self._assert_each_row_claimed_once(results)
        self.assertEqual(sum(1 for r in results if r), OrderBatch.objects.count())

    def test_overlapping_selections(self):
        first = self.row_ids[:3]
        second = self.row_ids[1:]

        results = self._race([first, second])

        self._assert_each_row_claimed_once(results)
        for result in results:
            if result:
                labels = set(
                    Order.objects.filter(id__in=[o.id for o in result.orders]).values_list(
                        "batch__label", flat=True
                    )
                )
                self.assertEqual(labels, {result.batch_number})
