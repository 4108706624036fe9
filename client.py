"""
HTTP client for the plantNet API.

`PlantNetClient` mirrors the storefront's data hooks one method per call, and
`CheckoutFlow` drives a purchase the way the checkout form does: intent,
card confirmation, order insert, then a separate stock decrement.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

DASHBOARD = "/dashboard"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class PlantNetClient:
    def __init__(self, base_url: str = "", session=None):
        self.base_url = base_url.rstrip("/")
        # requests.Session or anything with a compatible request() (e.g. fastapi TestClient)
        self.session = session if session is not None else requests.Session()

    def _call(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        response = self.session.request(method.upper(), self.base_url + path, json=json)
        if response.status_code >= 400:
            try:
                message = response.json().get("detail", response.text)
            except ValueError:
                message = response.text
            logger.warning("%s %s failed: %s %s", method.upper(), path, response.status_code, message)
            raise ApiError(response.status_code, str(message))
        return response.json()

    # session
    def login(self, email: str, **identity) -> dict:
        return self._call("post", "/jwt", {"email": email, **identity})

    def logout(self) -> dict:
        return self._call("get", "/logout")

    # users
    def save_user(self, email: str, name: Optional[str] = None, image: Optional[str] = None) -> dict:
        profile = {k: v for k, v in (("name", name), ("image", image)) if v is not None}
        return self._call("post", f"/users/{email}", profile)

    def get_role(self, email: str) -> Optional[str]:
        return self._call("get", f"/users/role/{email}").get("role")

    def request_seller(self, email: str) -> dict:
        return self._call("patch", f"/users/{email}")

    def update_role(self, email: str, role: str) -> dict:
        return self._call("patch", f"/user/role/{email}", {"role": role})

    def all_users(self, email: str) -> List[dict]:
        return self._call("get", f"/all-users/{email}")

    # plants
    def plants(self) -> List[dict]:
        return self._call("get", "/plants")

    def plant(self, plant_id: str) -> dict:
        return self._call("get", f"/plants/{plant_id}")

    def seller_plants(self) -> List[dict]:
        return self._call("get", "/plants/seller")

    def add_plant(self, plant: Dict[str, Any]) -> str:
        return self._call("post", "/plants", plant)["insertedId"]

    def delete_plant(self, plant_id: str) -> dict:
        return self._call("delete", f"/plants/{plant_id}")

    def update_quantity(self, plant_id: str, quantity: int, status: str = "decrease") -> dict:
        return self._call(
            "patch",
            f"/plants/quantity/{plant_id}",
            {"quantityToUpdate": quantity, "status": status},
        )

    # orders
    def payment_intent(self, plant_id: str, quantity: int) -> str:
        data = self._call("post", "/create-payment-intent", {"plantId": plant_id, "quantity": quantity})
        return data["clientSecret"]

    def place_order(self, order: Dict[str, Any]) -> str:
        return self._call("post", "/order", order)["insertedId"]

    def customer_orders(self, email: str) -> List[dict]:
        return self._call("get", f"/customer-orders/{email}")

    def seller_orders(self, email: str) -> List[dict]:
        return self._call("get", f"/seller-orders/{email}")

    def update_order_status(self, order_id: str, status: str) -> dict:
        return self._call("patch", f"/orders/{order_id}", {"status": status})

    def cancel_order(self, order_id: str) -> dict:
        return self._call("delete", f"/orders/{order_id}")

    # admin
    def admin_stat(self) -> dict:
        return self._call("get", "/admin-stat")


def route_for_role(role: Optional[str], required: str) -> Optional[str]:
    """None when the role may see the page, otherwise where to redirect."""
    if role == required:
        return None
    return DASHBOARD


class CheckoutFlow:
    """Purchase of a single plant.

    `confirm` receives the PaymentIntent client secret and returns
    ``(status, transaction_id)`` as reported by the card form. Only a
    ``"succeeded"`` status records an order.
    """

    def __init__(self, client: PlantNetClient):
        self.client = client

    def complete(self, purchase: Dict[str, Any], confirm: Callable[[str], Tuple[str, Optional[str]]]) -> Optional[str]:
        client_secret = self.client.payment_intent(purchase["plantId"], purchase["quantity"])
        status, transaction_id = confirm(client_secret)
        if status != "succeeded":
            logger.info("Payment not completed for plant %s: %s", purchase["plantId"], status)
            return None

        order = dict(purchase)
        order["transactionId"] = transaction_id
        order_id = self.client.place_order(order)
        # separate call: a failure here leaves the order in place with stock unchanged
        self.client.update_quantity(purchase["plantId"], purchase["quantity"], "decrease")
        return order_id
