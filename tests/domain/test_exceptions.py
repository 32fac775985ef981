"""Tests for the domain error taxonomy."""

import pytest

from catalog_api.api.errors import STATUS_BY_KIND
from catalog_api.domain import exceptions
from catalog_api.domain.exceptions import (
    AuthenticationRequiredError,
    CategoryExistsError,
    CategoryNotFoundError,
    DomainError,
    DuplicateEntryError,
    ErrorKind,
    ForbiddenError,
    StoreError,
    ValidationError,
    VariantNotFoundError,
)


def all_error_classes() -> list[type[DomainError]]:
    return [
        value
        for value in vars(exceptions).values()
        if isinstance(value, type) and issubclass(value, DomainError)
    ]


class TestErrorTaxonomy:
    """Tests for codes and kinds."""

    def test_codes_are_unique(self) -> None:
        """Should give every concrete error its own code."""
        codes = [cls.code for cls in all_error_classes()]
        assert len(codes) == len(set(codes))

    def test_every_kind_has_a_status(self) -> None:
        """Should map every kind to an HTTP status."""
        assert set(STATUS_BY_KIND) == set(ErrorKind)

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ValidationError("bad"), 400),
            (AuthenticationRequiredError(), 401),
            (ForbiddenError(), 403),
            (CategoryNotFoundError(1), 404),
            (CategoryExistsError(), 409),
            (DuplicateEntryError(), 409),
            (StoreError(), 503),
        ],
    )
    def test_status_by_kind(self, error: DomainError, status: int) -> None:
        """Should resolve each family to its status."""
        assert STATUS_BY_KIND[error.kind] == status


class TestErrorPayloads:
    """Tests for messages and details."""

    def test_default_message(self) -> None:
        """Should fall back to the class default message."""
        assert StoreError().message == "The catalog store is temporarily unavailable"

    def test_not_found_carries_id(self) -> None:
        """Should expose the looked-up id in details."""
        error = VariantNotFoundError(12)
        assert error.details == {"id": 12}
        assert error.code == "VARIANT_NOT_FOUND"

    def test_validation_field_in_details(self) -> None:
        """Should add the offending field next to other details."""
        error = ValidationError("too long", field="name", details={"max": 100})
        assert error.details == {"max": 100, "field": "name"}
        assert error.field == "name"
