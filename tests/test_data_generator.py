"""Tests for the test data generator."""

import re
import string

import pytest

from webqa.data.generator import (
    ENVIRONMENT_DATA,
    PASSWORD_SYMBOLS,
    TEST_CARDS,
    DataValidationError,
    TestDataGenerator,
)


@pytest.fixture
def generator(temp_dir):
    return TestDataGenerator(seed=1234, data_dir=temp_dir)


class TestTestDataGenerator:
    """Tests for TestDataGenerator."""

    def test_seed_is_deterministic(self, temp_dir):
        """Test the same seed produces the same records."""
        first = TestDataGenerator(seed=7, data_dir=temp_dir)
        second = TestDataGenerator(seed=7, data_dir=temp_dir)
        assert first.user() == second.user()
        assert first.product() == second.product()

    def test_password_classes(self, generator):
        """Test passwords contain every character class."""
        for length in (4, 12, 20):
            password = generator.password(length)
            assert len(password) == length
            assert any(c in string.ascii_lowercase for c in password)
            assert any(c in string.ascii_uppercase for c in password)
            assert any(c in string.digits for c in password)
            assert any(c in PASSWORD_SYMBOLS for c in password)

    def test_password_too_short(self, generator):
        """Test passwords shorter than four characters are rejected."""
        with pytest.raises(ValueError):
            generator.password(3)

    def test_user_fields(self, generator):
        """Test generated users are well formed."""
        user = generator.user()
        assert re.fullmatch(r"[a-z0-9]{9}", user["id"])
        assert user["email"].startswith(user["username"] + "@")
        assert re.fullmatch(r"\(\d{3}\) \d{3}-\d{4}", user["phone"])
        assert user["address"]["country"] == "USA"
        assert "1950-01-01" <= user["dateOfBirth"] <= "2005-12-31"

    def test_product_fields(self, generator):
        """Test generated products are within their ranges."""
        product = generator.product()
        assert 10 <= product["price"] <= 1000
        assert 1 <= product["stock"] <= 100
        assert re.fullmatch(r"SKU-[A-Z0-9]{8}", product["sku"])

    def test_order_total(self, generator):
        """Test the order total is the sum of its lines."""
        order = generator.order()
        assert len(order["items"]) == 2
        expected = round(sum(i["price"] * i["quantity"] for i in order["items"]), 2)
        assert order["total"] == expected

    @pytest.mark.parametrize("card_type", list(TEST_CARDS))
    def test_credit_card(self, generator, card_type):
        """Test cards use network test numbers and the right CVV length."""
        card = generator.credit_card(card_type)
        number, cvv_length = TEST_CARDS[card_type]
        assert card["cardNumber"] == number
        assert len(card["cvv"]) == cvv_length
        assert 1 <= int(card["expiryMonth"]) <= 12

    def test_unknown_card(self, generator):
        """Test an unknown card type is rejected."""
        with pytest.raises(ValueError):
            generator.credit_card("Diners")

    def test_bulk(self, generator):
        """Test bulk generation by kind."""
        assert len(generator.bulk("users", 3)) == 3
        with pytest.raises(ValueError):
            generator.bulk("invoices", 1)

    def test_data_set(self, generator):
        """Test a data set holds every kind."""
        data = generator.data_set(2)
        assert len(data["users"]) == len(data["products"]) == len(data["orders"]) == 2

    def test_environment_data(self):
        """Test environment data falls back to development."""
        assert TestDataGenerator.environment_data("staging") == ENVIRONMENT_DATA["staging"]
        assert TestDataGenerator.environment_data("nowhere") == ENVIRONMENT_DATA["development"]

    def test_validate(self, generator):
        """Test schema validation of records."""
        schema = {"id": "string", "price": "number", "stock": "number"}
        assert generator.validate(generator.product(), schema)
        assert not generator.validate({"id": "x", "price": True, "stock": 1}, schema)
        assert not generator.validate({"id": "x"}, schema)
        assert not generator.validate([], schema)
        with pytest.raises(DataValidationError):
            generator.assert_valid({"id": 1}, schema)

    def test_save_and_load(self, generator, temp_dir):
        """Test records round-trip through the data directory."""
        users = generator.bulk("users", 2)
        path = generator.save_to_file("users.json", users)
        assert path == temp_dir / "users.json"
        assert generator.load_from_file("users.json") == users

    def test_load_missing(self, generator):
        """Test loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            generator.load_from_file("missing.json")
