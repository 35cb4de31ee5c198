from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.constants import OrderStatus, PricingMode, UnavailableAction
from modules.orders.dtos import AddCartItemDTO, SubmitBatchDTO
from modules.orders.models import Order
from modules.orders.notifications import NullNotificationSink
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import CartService, OrderService
from modules.products.models import Product, ProductStatus, Vendor
from modules.products.repositories.django_repository import ProductDjangoRepository


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--batches",
            type=int,
            default=12,
            help="Number of batches to submit across the seeded buyers.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        buyers = self._seed_buyers()
        vendors = self._seed_vendors()
        products = self._seed_products(vendors)
        batches_created = self._seed_batches(buyers, products, options["batches"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"buyers={len(buyers)}, "
                f"vendors={len(vendors)}, "
                f"products={len(products)}, "
                f"batches={batches_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", email="admin@example.com", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user(
                "manager", email="manager@example.com", password="manager123", is_staff=True
            )
            created += 1
        return created

    def _seed_buyers(self) -> list:
        self.stdout.write("Creating buyers...")
        User = get_user_model()
        buyers = []
        seed_buyers = [
            ("jane", "Jane", "jane@example.com"),
            ("omar", "Omar", "omar@example.com"),
            ("li", "Li", "li@example.com"),
            ("priya", "Priya", "priya@example.com"),
            ("tomas", "Tomas", "tomas@example.com"),
        ]
        for username, first_name, email in seed_buyers:
            buyer = User.objects.filter(username=username).first()
            if buyer is None:
                buyer = User.objects.create_user(
                    username, email=email, password="buyer123", first_name=first_name
                )
            buyers.append(buyer)
        self.stdout.write(self.style.SUCCESS("Creating buyers... Done!"))
        return buyers

    def _seed_vendors(self) -> list[Vendor]:
        self.stdout.write("Creating vendors...")
        vendors: list[Vendor] = []
        for name, email in [
            ("Acme Supply", "orders@acme.example.com"),
            ("Globex", "sales@globex.example.com"),
            ("Initech Wholesale", "trade@initech.example.com"),
        ]:
            vendor, _ = Vendor.objects.get_or_create(
                name=name, defaults={"contact_email": email}
            )
            vendors.append(vendor)
        self.stdout.write(self.style.SUCCESS("Creating vendors... Done!"))
        return vendors

    def _seed_products(self, vendors: list[Vendor]) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("BEV-001", "Sparkling Water 500ml", "Beverages", "Water", "0.45", "10.80", 24),
            ("BEV-002", "Still Water 1.5l", "Beverages", "Water", "0.60", "7.20", 12),
            ("BEV-003", "Cold Brew Coffee", "Beverages", "Coffee", "2.10", "25.20", 12),
            ("BEV-004", "Ground Coffee 1kg", "Beverages", "Coffee", "9.90", "59.40", 6),
            ("BEV-005", "Green Tea 100 bags", "Beverages", "Tea", "3.50", "42.00", 12),
            ("SNK-001", "Sea Salt Crisps", "Snacks", "Crisps", "0.85", "20.40", 24),
            ("SNK-002", "Paprika Crisps", "Snacks", "Crisps", "0.85", "20.40", 24),
            ("SNK-003", "Dark Chocolate Bar", "Snacks", "Chocolate", "1.20", "24.00", 20),
            ("SNK-004", "Milk Chocolate Bar", "Snacks", "Chocolate", "1.10", "22.00", 20),
            ("SNK-005", "Trail Mix 200g", "Snacks", "Nuts", "2.40", "28.80", 12),
            ("HSE-001", "Dish Soap 1l", "Household", "Cleaning", "1.75", "21.00", 12),
            ("HSE-002", "Paper Towels 6pk", "Household", "Paper", "4.20", "33.60", 8),
            ("HSE-003", "Trash Bags 50ct", "Household", "Bags", "3.10", "37.20", 12),
            ("HSE-004", "Glass Cleaner", "Household", "Cleaning", "2.30", "27.60", 12),
            ("HSE-005", "Sponges 10pk", "Household", "Cleaning", "1.90", "22.80", 12),
        ]
        for sku, name, main, sub, unit, case, pack in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "vendor": random.choice(vendors),
                    "main_category": main,
                    "sub_category": sub,
                    "wholesale_unit_price": Decimal(unit),
                    "wholesale_case_price": Decimal(case),
                    "case_pack": pack,
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)

        inactive = products[-1]
        if inactive.status != ProductStatus.INACTIVE:
            inactive.status = ProductStatus.INACTIVE
            inactive.save()
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_batches(self, buyers: list, products: list[Product], count: int) -> int:
        self.stdout.write("Creating batches...")
        buyer_ids = [buyer.pk for buyer in buyers]
        if Order.objects.filter(buyer_id__in=buyer_ids).exists():
            self.stdout.write(self.style.WARNING("Skipping batches (buyers already have orders)."))
            return 0

        available = [p for p in products if p.status == ProductStatus.ACTIVE]
        if not buyers or not available:
            self.stdout.write(self.style.WARNING("Skipping batches (no buyers/products)."))
            return 0

        order_repo = OrderDjangoRepository()
        product_repo = ProductDjangoRepository()
        carts = CartService(order_repository=order_repo, product_repository=product_repo)
        orders = OrderService(
            order_repository=order_repo,
            product_repository=product_repo,
            notifier=NullNotificationSink(),
        )

        status_weights = [
            (OrderStatus.PENDING, 0.5),
            (OrderStatus.COMPLETED, 0.35),
            (OrderStatus.CANCELLED, 0.15),
        ]
        statuses = [s for s, _ in status_weights]
        weights = [w for _, w in status_weights]

        for _ in range(count):
            buyer = random.choice(buyers)
            item_ids = []
            for product in random.sample(available, k=min(random.randint(1, 5), len(available))):
                item = carts.add_item(
                    AddCartItemDTO(
                        buyer_id=buyer.pk,
                        buyer_email=buyer.email,
                        product_id=product.id,
                        quantity=random.randint(1, 4),
                        pricing_mode=random.choice(list(PricingMode)),
                        unavailable_action=random.choice(list(UnavailableAction)),
                    )
                )
                item_ids.append(item.id)

            result = orders.submit_batch(
                SubmitBatchDTO(
                    buyer_id=buyer.pk,
                    buyer_email=buyer.email,
                    buyer_name=buyer.first_name,
                    cart_item_ids=item_ids,
                )
            )
            status = random.choices(statuses, weights=weights, k=1)[0]
            if status != OrderStatus.PENDING:
                orders.set_batch_status(result.batch_number, status, notes="Seed data")

        # Leave something in each buyer's cart so the cart endpoints have data.
        for buyer in buyers:
            carts.add_item(
                AddCartItemDTO(
                    buyer_id=buyer.pk,
                    buyer_email=buyer.email,
                    product_id=random.choice(available).id,
                    quantity=1,
                )
            )

        self.stdout.write(self.style.SUCCESS("Creating batches... Done!"))
        return count
