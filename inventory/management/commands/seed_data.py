"""
Management command to seed the database with sample data.

Generates:
- Vendors and their products with opening stock
- Customers with delivery addresses
- Couriers
- Orders placed and progressed through the regular services, so stock,
  totals and payments stay consistent

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from core.exceptions import ServiceError
from couriers.models import Courier
from customers.models import Address, Customer
from inventory.models import Product, Vendor


class Command(BaseCommand):
    help = 'Seed the database with sample vendors, products, customers, couriers and orders'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )
        parser.add_argument(
            '--vendors',
            type=int,
            default=8,
            help='Number of vendors to create (default: 8)',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=200,
            help='Number of products to create (default: 200)',
        )
        parser.add_argument(
            '--customers',
            type=int,
            default=50,
            help='Number of customers to create (default: 50)',
        )
        parser.add_argument(
            '--orders',
            type=int,
            default=100,
            help='Number of orders to place (default: 100)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            vendors = self._create_vendors(options['vendors'])
            products = self._create_products(options['products'], vendors)
            customers = self._create_customers(options['customers'])
            self._create_couriers()

        self._place_orders(options['orders'], customers, products)

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """Clear all existing data."""
        from core.models import ErrorLog
        from couriers.models import OrderDelivery
        from orders.models import Order, OrderItem, OrderStatusChange
        from payments.models import Payment

        ErrorLog.objects.all().delete()
        OrderDelivery.objects.all().delete()
        Payment.objects.filter(refund_of__isnull=False).delete()
        Payment.objects.all().delete()
        OrderStatusChange.objects.all().delete()
        OrderItem.objects.all().delete()
        Order.objects.all().delete()
        Customer.objects.update(default_address=None)
        Address.objects.all().delete()
        Customer.objects.all().delete()
        Product.objects.all().delete()
        Vendor.objects.all().delete()
        Courier.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing data cleared.'))

    def _create_vendors(self, count):
        """Create sample vendors."""
        names = [
            'Fresh Farms', 'City Grocers', 'Tech Depot', 'Home Basics',
            'Green Valley', 'Urban Pantry', 'Daily Needs', 'Prime Goods',
            'Corner Market', 'Metro Supply', 'Sunrise Traders', 'Blue Harbor'
        ]
        cities = ['Riyadh', 'Jeddah', 'Dammam', 'Mecca', 'Medina', 'Khobar']

        vendors = []
        for i in range(count):
            name = names[i % len(names)] if i < len(names) else f"{names[i % len(names)]} {i + 1}"
            vendors.append(Vendor(
                name=name,
                contact_number=f"+9665{random.randint(10000000, 99999999)}",
                email=f"contact{i + 1}@vendor.example",
                location=random.choice(cities)
            ))

        Vendor.objects.bulk_create(vendors)
        vendors = list(Vendor.objects.all())
        self.stdout.write(self.style.SUCCESS(f'Created {len(vendors)} vendors'))
        return vendors

    def _create_products(self, count, vendors):
        """Create sample products with realistic data."""
        product_templates = {
            'Groceries': ['Basmati Rice', 'Olive Oil', 'Dates Box', 'Arabic Coffee', 'Green Tea'],
            'Dairy': ['Fresh Milk', 'Laban', 'Cheddar Cheese', 'Greek Yogurt', 'Butter'],
            'Electronics': ['Power Bank', 'USB-C Cable', 'Bluetooth Speaker', 'Phone Charger'],
            'Household': ['Dish Soap', 'Paper Towels', 'Laundry Detergent', 'Trash Bags'],
            'Bakery': ['Whole Wheat Bread', 'Croissant Pack', 'Pita Bread', 'Muffins'],
        }
        sizes = ['Small', 'Medium', 'Large', 'Family Pack', 'Value Pack']

        products = []
        for i in range(count):
            category = random.choice(list(product_templates))
            base_name = random.choice(product_templates[category])
            products.append(Product(
                vendor=random.choice(vendors),
                name=f"{base_name} {random.choice(sizes)} #{i + 1}",
                description=random.choice([
                    f"Quality {base_name.lower()} delivered to your door.",
                    f"Popular {category.lower()} item.",
                    "",
                ]),
                price=Decimal(str(round(random.uniform(2, 300), 2))),
                # Opening stock; later changes go through the inventory ledger
                stock_quantity=random.randint(0, 200),
                category=category,
                is_active=random.random() > 0.05  # 95% active
            ))

        Product.objects.bulk_create(products)
        products = list(Product.objects.filter(is_active=True))
        self.stdout.write(self.style.SUCCESS(f'Created {len(products)} active products'))
        return products

    def _create_customers(self, count):
        """Create sample customers, each with one or two addresses."""
        first_names = ['Ahmed', 'Sara', 'Omar', 'Lina', 'Khalid', 'Noura', 'Faisal', 'Huda']
        last_names = ['Alharbi', 'Alqahtani', 'Alshehri', 'Alzahrani', 'Alotaibi']
        cities = ['Riyadh', 'Jeddah', 'Dammam']

        customers = []
        for i in range(count):
            customer = Customer.objects.create(
                name=f"{random.choice(first_names)} {random.choice(last_names)}",
                phone_number=f"+9665{random.randint(10000000, 99999999)}",
                email=f"customer{i + 1}@example.com" if random.random() > 0.3 else None
            )
            for _ in range(random.randint(1, 2)):
                address = Address.objects.create(
                    customer=customer,
                    address_line=f"{random.randint(1, 999)} King Fahd Road",
                    city=random.choice(cities),
                    postal_code=f"{random.randint(10000, 99999)}"
                )
                if customer.default_address_id is None:
                    customer.default_address = address
                    customer.save(update_fields=['default_address'])
            customers.append(customer)

        self.stdout.write(self.style.SUCCESS(f'Created {len(customers)} customers'))
        return customers

    def _create_couriers(self):
        """Create sample couriers."""
        couriers = [
            Courier(name='SMSA Express', api_endpoint='https://api.smsa.example/v1', contact_number='920009999'),
            Courier(name='Aramex', api_endpoint='https://api.aramex.example/v2', contact_number='920020505'),
            Courier(name='SPL', api_endpoint='https://api.spl.example', contact_number='920005700'),
            Courier(name='Naqel', api_endpoint='', contact_number='920020505', status=Courier.Status.INACTIVE),
        ]
        Courier.objects.bulk_create(couriers)
        self.stdout.write(self.style.SUCCESS(f'Created {len(couriers)} couriers'))

    def _place_orders(self, count, customers, products):
        """Place orders through the order services and advance some of them."""
        from orders.models import Order
        from orders.services import create_order, transition_order
        from payments.services import record_payment

        placed = rejected = 0
        lifecycle = [Order.Status.CONFIRMED, Order.Status.DISPATCHED, Order.Status.DELIVERED]

        for i in range(count):
            customer = random.choice(customers)
            address = customer.default_address
            lines = random.sample(products, k=min(len(products), random.randint(1, 4)))
            items = [{'product_id': p.id, 'quantity': random.randint(1, 5)} for p in lines]

            try:
                order = create_order(customer.id, address.id, items)
                if random.random() > 0.3:
                    record_payment(order.id, 'mada', order.total_amount, f"seed-{order.id}-{i}")
                for target in lifecycle[:random.randint(0, len(lifecycle))]:
                    order = transition_order(order.id, target)
                if random.random() < 0.1 and order.status != Order.Status.DELIVERED:
                    transition_order(order.id, Order.Status.CANCELLED)
                placed += 1
            except ServiceError as e:
                rejected += 1
                self.stdout.write(f'  Order skipped: {e}')

        self.stdout.write(self.style.SUCCESS(f'Placed {placed} orders ({rejected} rejected)'))
