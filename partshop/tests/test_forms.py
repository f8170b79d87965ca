"""Tests for the diagnose request and product forms."""

from datetime import datetime
from decimal import Decimal

import pytest

from partshop.forms import DiagnoseForm, FormValidationError, FieldError, ProductForm


def valid_diagnose_data(**overrides):
    data = {
        "customer_name": "Sipho Dlamini",
        "email": "sipho@example.com",
        "phone": "+27 82 555 0199",
        "address": "12 Long Street, Cape Town",
        "car_make": "Honda",
        "car_model": "Accord",
        "car_year": "2003",
        "vin": "",
        "problem_description": "Engine light is on",
        "service_type": "Engine Diagnostics",
        "urgency_level": "high",
    }
    data.update(overrides)
    return data


def valid_product_data(**overrides):
    data = {
        "name": "Brake Pads",
        "price": "89.99",
        "sale_price": "",
        "category": "braking",
        "brand": "Bosch",
        "stock_quantity": "25",
        "part_number": "BP-001",
    }
    data.update(overrides)
    return data


def error_fields(errors):
    return {e.field for e in errors}


class TestDiagnoseForm:
    """Tests for DiagnoseForm validation."""

    def test_valid_form(self):
        assert DiagnoseForm.from_dict(valid_diagnose_data()).validate() == []

    def test_empty_form_lists_every_required_field(self):
        errors = DiagnoseForm().validate()
        assert error_fields(errors) == {
            "customer_name", "email", "phone", "car_make", "car_model",
            "car_year", "service_type", "problem_description",
        }

    @pytest.mark.parametrize("field,value", [
        ("email", "not-an-email"),
        ("phone", "call me"),
        ("car_year", "1899"),
        ("service_type", "Oil Painting"),
        ("urgency_level", "whenever"),
        ("vin", "1HGCM82643A004352"),
    ])
    def test_invalid_field(self, field, value):
        errors = DiagnoseForm.from_dict(valid_diagnose_data(**{field: value})).validate()
        assert field in error_fields(errors)

    def test_year_can_be_next_year(self):
        next_year = str(datetime.now().year + 1)
        assert DiagnoseForm.from_dict(valid_diagnose_data(car_year=next_year)).validate() == []

    def test_non_numeric_year_is_missing(self):
        form = DiagnoseForm.from_dict(valid_diagnose_data(car_year="soon"))
        assert form.car_year is None
        assert "car_year" in error_fields(form.validate())

    def test_valid_vin_is_cleaned(self):
        form = DiagnoseForm.from_dict(valid_diagnose_data(vin="1hgcm82633a004352"))
        assert form.validate() == []
        assert form.to_request().vin == "1HGCM82633A004352"

    def test_too_many_images(self):
        form = DiagnoseForm.from_dict(valid_diagnose_data(images=["data:image/png;base64,AA"] * 6))
        assert "images" in error_fields(form.validate())

    def test_to_request_without_year_raises(self):
        form = DiagnoseForm.from_dict(valid_diagnose_data(car_year=""))
        with pytest.raises(FormValidationError) as excinfo:
            form.to_request()
        assert excinfo.value.errors[0].field == "car_year"

    def test_to_request(self):
        request = DiagnoseForm.from_dict(valid_diagnose_data(customer_name="  Sipho  ")).to_request()
        assert request.customer_name == "Sipho"
        assert request.car_year == 2003
        assert request.vin is None
        assert request.status == "pending"


class TestProductForm:
    """Tests for ProductForm validation."""

    def test_valid_form(self):
        assert ProductForm.from_dict(valid_product_data()).validate() == []

    def test_unknown_keys_are_ignored(self):
        form = ProductForm.from_dict(valid_product_data(id="x", created_at="now"))
        assert form.validate() == []

    @pytest.mark.parametrize("overrides,field", [
        ({"name": ""}, "name"),
        ({"category": " "}, "category"),
        ({"brand": ""}, "brand"),
        ({"part_number": ""}, "part_number"),
        ({"price": ""}, "price"),
        ({"price": "abc"}, "price"),
        ({"price": "-1"}, "price"),
        ({"price": "NaN"}, "price"),
        ({"price": "Infinity"}, "price"),
        ({"sale_price": "NaN"}, "sale_price"),
        ({"sale_price": "100"}, "sale_price"),
        ({"stock_quantity": "2.5"}, "stock_quantity"),
        ({"stock_quantity": "-3"}, "stock_quantity"),
    ])
    def test_invalid_field(self, overrides, field):
        errors = ProductForm.from_dict(valid_product_data(**overrides)).validate()
        assert field in error_fields(errors)

    def test_price_error_reported_once(self):
        errors = ProductForm.from_dict(valid_product_data(price="abc")).validate()
        assert [e.field for e in errors].count("price") == 1

    @pytest.mark.parametrize("price", ["NaN", "Infinity"])
    def test_non_finite_price_is_not_a_number(self, price):
        errors = ProductForm.from_dict(valid_product_data(price=price)).validate()
        assert errors == [FieldError("price", "Must be a number")]

    def test_to_fields(self):
        fields = ProductForm.from_dict(valid_product_data(name=" Brake Pads ", sale_price="0")).to_fields()
        assert fields["name"] == "Brake Pads"
        assert fields["price"] == Decimal("89.99")
        assert fields["sale_price"] is None
        assert fields["stock_quantity"] == 25


class TestFormValidationError:
    """Tests for the error carrying field problems."""

    def test_message_lists_fields(self):
        error = FormValidationError([FieldError("email", "Email is required")])
        assert "email: Email is required" in str(error)
        assert error.errors[0].to_dict() == {"field": "email", "message": "Email is required"}
