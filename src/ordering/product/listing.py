"""Product listing — commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.product.product import Product


@ordering.command(part_of="Product")
class ListProduct:
    farmer_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    price = Float(required=True, min_value=0.0)
    unit = String(max_length=20)
    image_url = String(max_length=500)


@ordering.command(part_of="Product")
class DelistProduct:
    product_id = Identifier(required=True)
    farmer_id = Identifier(required=True)


@ordering.command_handler(part_of=Product)
class ProductListingHandler:
    @handle(ListProduct)
    def list_product(self, command):
        product = Product.list_for_sale(
            farmer_id=command.farmer_id,
            name=command.name,
            price=command.price,
            unit=command.unit,
            image_url=command.image_url,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(DelistProduct)
    def delist_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.delist(command.farmer_id)
        repo.add(product)
