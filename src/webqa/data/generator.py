"""Randomized domain fixtures for test input."""

import json
import logging
import random
import string
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

from faker import Faker

logger = logging.getLogger(__name__)

ORDER_STATUSES = ["pending", "processing", "shipped", "delivered", "cancelled"]

PRODUCT_CATEGORIES = ["Electronics", "Clothing", "Books", "Home & Garden", "Sports", "Toys", "Beauty", "Automotive"]

# Card numbers reserved by the networks for testing
TEST_CARDS = {
    "Visa": ("4111111111111111", 3),
    "MasterCard": ("5555555555554444", 3),
    "American Express": ("378282246310005", 4),
    "Discover": ("6011111111111117", 3),
}

PASSWORD_SYMBOLS = "!@#$%^&*"

ENVIRONMENT_DATA = {
    "development": {
        "baseUrl": "http://localhost:3000",
        "apiUrl": "http://localhost:8000",
        "adminUser": {"username": "admin", "password": "admin123"},
        "testUser": {"username": "testuser", "password": "test123"},
    },
    "staging": {
        "baseUrl": "https://staging.example.com",
        "apiUrl": "https://api-staging.example.com",
        "adminUser": {"username": "admin", "password": "staging_admin_pass"},
        "testUser": {"username": "testuser", "password": "staging_test_pass"},
    },
    "production": {
        "baseUrl": "https://example.com",
        "apiUrl": "https://api.example.com",
        "adminUser": {"username": "admin", "password": "prod_admin_pass"},
        "testUser": {"username": "testuser", "password": "prod_test_pass"},
    },
}

_TYPE_NAMES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


class DataValidationError(Exception):
    """Raised when generated or loaded data does not match its schema."""


class TestDataGenerator:
    """Generates users, products, orders and related records with Faker.

    Pass a seed to get the same sequence of records on every run.
    """

    __test__ = False

    def __init__(self, seed: Optional[int] = None, data_dir: Path | str = "test-data", locale: str = "en_US"):
        self.faker = Faker(locale)
        self.random = random.Random(seed)
        if seed is not None:
            self.faker.seed_instance(seed)
        self.data_dir = Path(data_dir)

    def id(self) -> str:
        return "".join(self.random.choices(string.ascii_lowercase + string.digits, k=9))

    def password(self, length: int = 12) -> str:
        """Return a password containing upper, lower, digit and symbol characters."""
        if length < 4:
            raise ValueError("Password length must be at least 4")
        required = [
            self.random.choice(string.ascii_lowercase),
            self.random.choice(string.ascii_uppercase),
            self.random.choice(string.digits),
            self.random.choice(PASSWORD_SYMBOLS),
        ]
        charset = string.ascii_letters + string.digits + PASSWORD_SYMBOLS
        rest = self.random.choices(charset, k=length - len(required))
        chars = required + rest
        self.random.shuffle(chars)
        return "".join(chars)

    def phone(self) -> str:
        """Return a US-style number such as ``(555) 123-4567``."""
        area = self.random.randint(100, 999)
        exchange = self.random.randint(100, 999)
        number = self.random.randint(1000, 9999)
        return f"({area}) {exchange}-{number}"

    def address(self) -> dict[str, str]:
        return {
            "street": self.faker.street_address(),
            "city": self.faker.city(),
            "state": self.faker.state_abbr(),
            "zipCode": self.faker.zipcode(),
            "country": "USA",
        }

    def date_of_birth(self) -> str:
        dob = self.faker.date_between_dates(date_start=date(1950, 1, 1), date_end=date(2005, 12, 31))
        return dob.isoformat()

    def user(self) -> dict[str, Any]:
        first_name = self.faker.first_name()
        last_name = self.faker.last_name()
        username = f"{first_name.lower()}.{last_name.lower()}{self.random.randint(1, 999)}"
        return {
            "id": self.id(),
            "firstName": first_name,
            "lastName": last_name,
            "email": f"{username}@{self.faker.free_email_domain()}",
            "username": username,
            "password": self.password(),
            "phone": self.phone(),
            "address": self.address(),
            "dateOfBirth": self.date_of_birth(),
        }

    def product(self) -> dict[str, Any]:
        adjective = self.random.choice(["Premium", "Deluxe", "Professional", "Advanced", "Smart", "Ultimate"])
        noun = self.random.choice(["Device", "Tool", "System", "Kit", "Set", "Bundle"])
        sku = "".join(self.random.choices(string.ascii_uppercase + string.digits, k=8))
        return {
            "id": self.id(),
            "name": f"{adjective} {noun}",
            "description": self.faker.sentence(nb_words=10),
            "category": self.random.choice(PRODUCT_CATEGORIES),
            "price": round(self.random.uniform(10, 1000), 2),
            "stock": self.random.randint(1, 100),
            "sku": f"SKU-{sku}",
            "rating": self.random.randint(1, 5),
            "reviews": self.random.randint(0, 999),
        }

    def order(self) -> dict[str, Any]:
        items = []
        for _ in range(2):
            product = self.product()
            items.append({**product, "quantity": self.random.randint(1, 3)})
        total = round(sum(item["price"] * item["quantity"] for item in items), 2)
        return {
            "id": self.id(),
            "userId": self.id(),
            "items": items,
            "total": total,
            "status": self.random.choice(ORDER_STATUSES),
            "orderDate": datetime.now(timezone.utc).isoformat(),
            "shippingAddress": self.address(),
            "billingAddress": self.address(),
        }

    def credit_card(self, card_type: Optional[str] = None) -> dict[str, str]:
        """Return test card details; never a real card number.

        Raises:
            ValueError: If the card type is unknown
        """
        card_type = card_type or self.random.choice(list(TEST_CARDS))
        if card_type not in TEST_CARDS:
            raise ValueError(f"Unknown card type '{card_type}'. Expected one of: {list(TEST_CARDS)}")
        number, cvv_length = TEST_CARDS[card_type]
        return {
            "cardNumber": number,
            "cardType": card_type,
            "expiryMonth": f"{self.random.randint(1, 12):02d}",
            "expiryYear": str(datetime.now().year + self.random.randint(1, 5)),
            "cvv": "".join(self.random.choices(string.digits, k=cvv_length)),
            "holderName": "Test User",
        }

    def data_set(self, count: int = 5) -> dict[str, Any]:
        return {
            "users": [self.user() for _ in range(count)],
            "products": [self.product() for _ in range(count)],
            "orders": [self.order() for _ in range(count)],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def bulk(self, kind: str, count: int) -> list[dict[str, Any]]:
        """Generate ``count`` records of one kind (users, products or orders)."""
        factories = {"users": self.user, "products": self.product, "orders": self.order}
        if kind not in factories:
            raise ValueError(f"Unknown data kind '{kind}'. Expected one of: {list(factories)}")
        return [factories[kind]() for _ in range(count)]

    @staticmethod
    def environment_data(environment: str) -> dict[str, Any]:
        """Return URLs and accounts for an environment, defaulting to development."""
        return ENVIRONMENT_DATA.get(environment, ENVIRONMENT_DATA["development"])

    @staticmethod
    def validate(data: Any, schema: dict[str, str]) -> bool:
        """Check that ``data`` has every schema key with the named type."""
        if not isinstance(data, dict):
            return False

        for key, type_name in schema.items():
            if key not in data:
                logger.warning(f"Missing required field: {key}")
                return False
            expected = _TYPE_NAMES.get(type_name, ())
            value = data[key]
            if isinstance(value, bool) and type_name == "number":
                logger.warning(f"Field {key} should be {type_name}, got boolean")
                return False
            if not isinstance(value, expected):
                logger.warning(f"Field {key} should be {type_name}, got {type(value).__name__}")
                return False
        return True

    def assert_valid(self, data: Any, schema: dict[str, str]) -> None:
        if not self.validate(data, schema):
            raise DataValidationError(f"Data does not match schema: {sorted(schema)}")

    def save_to_file(self, filename: str, data: Any) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.data_dir / filename
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug(f"Saved test data to: {path}")
        return path

    def load_from_file(self, filename: str) -> Any:
        """Load JSON test data.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = self.data_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Test data file not found: {path}")
        data = json.loads(path.read_text(encoding="utf-8"))
        logger.debug(f"Loaded test data from: {path}")
        return data
