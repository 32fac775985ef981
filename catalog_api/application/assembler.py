"""Builds product read models from repository rows.

Collections for a whole page of products are fetched with one query per
concern and stitched together in memory.
"""

from collections.abc import Sequence
from decimal import Decimal

from catalog_api.application.views import (
    CategoryRef,
    OptionPreview,
    OptionValueView,
    OptionView,
    PriceRange,
    ProductAttributeView,
    ProductDetail,
    ProductRef,
    ProductSummary,
    SelectedOption,
    VariantPreview,
    VariantView,
)
from catalog_api.catalog.models import Category, Product, ProductOption, ProductVariant
from catalog_api.catalog.repositories import (
    CategoryRepository,
    OptionRepository,
    PackageOptionRepository,
    ProductAttributeRepository,
    VariantRepository,
)


def variant_images(variants: Sequence[ProductVariant]) -> list[str]:
    """Images of the default variant, else of the first variant having any."""
    for variant in variants:
        if variant.is_default and variant.images:
            return list(variant.images)
    for variant in variants:
        if variant.images:
            return list(variant.images)
    return []


def price_range(variants: Sequence[ProductVariant]) -> PriceRange | None:
    """Lowest and highest variant price, None without variants."""
    if not variants:
        return None
    prices = [Decimal(variant.price) for variant in variants]
    return PriceRange(min=min(prices), max=max(prices))


def option_views(
    options: Sequence[ProductOption],
    variant_counts: dict[int, int] | None = None,
) -> list[OptionView]:
    """Convert options (values loaded) to views with per-value variant counts."""
    variant_counts = variant_counts or {}
    return [
        OptionView(
            option_id=option.id,
            product_id=option.product_id,
            option_name=option.name,
            option_display_name=option.display_name,
            position=option.position,
            values=[
                OptionValueView(
                    value_id=value.id,
                    value=value.value,
                    value_display_name=value.display_name,
                    color_code=value.color_code,
                    position=value.position,
                    variant_count=variant_counts.get(value.id, 0),
                )
                for value in option.values
            ],
            created_at=option.created_at,
            updated_at=option.updated_at,
        )
        for option in options
    ]


def variant_view(
    variant: ProductVariant,
    selection: dict[int, int],
    options: Sequence[ProductOption],
    product: Product | None = None,
) -> VariantView:
    """Build a variant view resolving its selection against the options.

    Args:
        variant: Variant row.
        selection: Option ID -> option value ID for this variant.
        options: The product's options with values loaded.
        product: Parent product to embed, if wanted.
    """
    selected: list[SelectedOption] = []
    for option in options:
        value_id = selection.get(option.id)
        if value_id is None:
            continue
        value = next((item for item in option.values if item.id == value_id), None)
        if value is None:
            continue
        selected.append(
            SelectedOption(
                option_id=option.id,
                option_name=option.name,
                option_display_name=option.display_name,
                value_id=value.id,
                value=value.value,
                value_display_name=value.display_name,
                color_code=value.color_code,
            )
        )

    return VariantView(
        id=variant.id,
        product_id=variant.product_id,
        sku=variant.sku,
        price=variant.price,
        stock=variant.stock,
        in_stock=variant.in_stock,
        allow_purchase=variant.allow_purchase,
        is_default=variant.is_default,
        is_popular=variant.is_popular,
        images=list(variant.images or []),
        selected_options=selected,
        created_at=variant.created_at,
        updated_at=variant.updated_at,
        product=(
            ProductRef(id=product.id, name=product.name, brand=product.brand)
            if product is not None
            else None
        ),
    )


class ProductViewBuilder:
    """Assembles listing and detail views for products.

    Example usage:
        builder = ProductViewBuilder(categories, variants, options, attributes, packages)
        summaries = await builder.summaries(products)
        detail = await builder.detail(product)
    """

    def __init__(
        self,
        categories: CategoryRepository,
        variants: VariantRepository,
        options: OptionRepository,
        product_attributes: ProductAttributeRepository,
        package_options: PackageOptionRepository,
    ) -> None:
        self.categories = categories
        self.variants = variants
        self.options = options
        self.product_attributes = product_attributes
        self.package_options = package_options

    async def category_refs(self, category_ids: set[int]) -> dict[int, CategoryRef]:
        """Category references with their parents, in two queries at most."""
        categories = dict(await self.categories.get_many(list(category_ids)))
        missing_parents = {
            category.parent_id
            for category in categories.values()
            if category.parent_id is not None and category.parent_id not in categories
        }
        if missing_parents:
            categories.update(await self.categories.get_many(list(missing_parents)))

        def ref(category: Category) -> CategoryRef:
            parent = categories.get(category.parent_id) if category.parent_id else None
            return CategoryRef(
                id=category.id,
                name=category.name,
                parent=CategoryRef(id=parent.id, name=parent.name) if parent else None,
            )

        return {
            category_id: ref(categories[category_id])
            for category_id in category_ids
            if category_id in categories
        }

    def summary(
        self,
        product: Product,
        variants: Sequence[ProductVariant],
        options: Sequence[ProductOption],
        category: CategoryRef | None,
        view_type: type[ProductSummary] = ProductSummary,
        **extra,
    ) -> ProductSummary:
        """Listing view for one product from already-loaded collections."""
        return view_type(
            id=product.id,
            name=product.name,
            category_id=product.category_id,
            category=category,
            brand=product.brand,
            sku=product.base_sku,
            short_description=product.short_description,
            long_description=product.long_description,
            tags=list(product.tags or []),
            seller_id=product.seller_id,
            has_variants=bool(variants),
            price_range=price_range(variants),
            allow_purchase=any(variant.allow_purchase for variant in variants),
            created_at=product.created_at,
            updated_at=product.updated_at,
            images=variant_images(variants),
            variant_preview=VariantPreview(
                total_variants=len(variants),
                options=[
                    OptionPreview(
                        name=option.name,
                        display_name=option.display_name,
                        available_values=[value.value for value in option.values],
                    )
                    for option in options
                ],
            ),
            **extra,
        )

    async def summaries(
        self,
        products: Sequence[Product],
        view_type: type[ProductSummary] = ProductSummary,
        extras: dict[int, dict] | None = None,
    ) -> list[ProductSummary]:
        """Listing views for a page of products.

        Args:
            products: Products in display order.
            view_type: Summary subclass to build (e.g. SearchHit).
            extras: Product ID -> additional constructor fields.
        """
        if not products:
            return []
        extras = extras or {}
        product_ids = [product.id for product in products]
        variants = await self.variants.list_by_products(product_ids)
        options = await self.options.list_by_products(product_ids)
        categories = await self.category_refs({product.category_id for product in products})
        return [
            self.summary(
                product,
                variants.get(product.id, []),
                options.get(product.id, []),
                categories.get(product.category_id),
                view_type=view_type,
                **extras.get(product.id, {}),
            )
            for product in products
        ]

    async def detail(self, product: Product) -> ProductDetail:
        """Detail view with attributes, package options, options and variants."""
        variants = list(await self.variants.list_by_product(product.id))
        options = list(await self.options.list_by_product(product.id))
        selections = await self.variants.get_selections([variant.id for variant in variants])
        variant_counts = await self.variants.count_by_value_for_product(product.id)
        attributes = await self.product_attributes.list_by_product(product.id)
        packages = await self.package_options.list_by_product(product.id)
        categories = await self.category_refs({product.category_id})

        detail = self.summary(
            product,
            variants,
            options,
            categories.get(product.category_id),
            view_type=ProductDetail,
        )
        detail.attributes = [ProductAttributeView.from_model(attribute) for attribute in attributes]
        detail.package_options = list(packages)
        detail.options = option_views(options, variant_counts)
        detail.variants = [
            variant_view(variant, selections.get(variant.id, {}), options) for variant in variants
        ]
        return detail
