"""Farmer registration — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.farmer.farmer import Farmer


@ordering.command(part_of="Farmer")
class RegisterFarmer:
    """Make a farmer known to ordering so orders can be placed against them."""

    farmer_id: Identifier()  # reuse the identity issued by the auth service
    full_name: String(required=True, max_length=150)
    farm_name: String(max_length=200)
    phone: String(max_length=30)
    location: String(max_length=200)


@ordering.command_handler(part_of=Farmer)
class RegisterFarmerHandler:
    @handle(RegisterFarmer)
    def register_farmer(self, command):
        kwargs = {"id": command.farmer_id} if command.farmer_id else {}
        farmer = Farmer(
            full_name=command.full_name,
            farm_name=command.farm_name,
            phone=command.phone,
            location=command.location,
            total_orders=0,
            **kwargs,
        )
        current_domain.repository_for(Farmer).add(farmer)
        return str(farmer.id)
