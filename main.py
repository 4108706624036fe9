import os
import time
import logging
from typing import Any, Dict, Optional

import stripe
from bson import ObjectId
from fastapi import BackgroundTasks, Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from pymongo.errors import PyMongoError

import auth
import payments
from database import create_document, get_db, get_documents, to_object_id, to_public
from mailer import send_order_emails
from schemas import (
    Order,
    PaymentIntentRequest,
    Plant,
    QuantityUpdate,
    RoleUpdate,
    StatusUpdate,
    TokenPayload,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("plantnet")

app = FastAPI(title="plantNet API")

CLIENT_ORIGINS = [
    o.strip()
    for o in os.getenv("CLIENT_ORIGINS", "http://localhost:5173,http://localhost:5174").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CLIENT_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

PLANTS_PAGE_SIZE = 20
DELIVERED = "Delivered"


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info("%s %s %s %.1f ms", request.method, request.url.path, response.status_code, elapsed)
    return response


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/")
def root():
    return {"message": "Hello from plantNet Server.."}


# -----------------
# Session
# -----------------
@app.post("/jwt")
def issue_token(payload: TokenPayload, response: Response):
    token = auth.create_token(payload.model_dump(mode="json"))
    auth.set_token_cookie(response, token)
    return {"success": True}


@app.get("/logout")
def logout(response: Response):
    auth.clear_token_cookie(response)
    return {"success": True}

# -----------------
# Users
# -----------------
@app.post("/users/{email}")
def save_user(email: str, payload: Optional[Dict[str, Any]] = Body(None), db=Depends(get_db)):
    existing = db["users"].find_one({"email": email})
    if existing:
        return to_public(existing)

    user = dict(payload or {})
    # role and status only change through the admin flow
    user.pop("role", None)
    user.pop("status", None)
    user.update({"email": email, "role": "customer", "timestamp": int(time.time() * 1000)})
    new_id = create_document("users", user)
    logger.info("Created user %s", email)
    return to_public(db["users"].find_one({"_id": to_object_id(new_id)}))


@app.patch("/users/{email}")
def request_status(email: str, user=Depends(auth.verify_token), db=Depends(get_db)):
    stored = db["users"].find_one({"email": email})
    if not stored:
        raise HTTPException(status_code=404, detail="User not found")
    if stored.get("status") == "Requested":
        raise HTTPException(status_code=409, detail="You Have Already Requested, wait for some time")
    result = db["users"].update_one({"email": email}, {"$set": {"status": "Requested"}})
    return {"matched": result.matched_count, "modified": result.modified_count}


@app.patch("/user/role/{email}")
def update_role(email: str, payload: RoleUpdate, admin=Depends(auth.verify_admin), db=Depends(get_db)):
    result = db["users"].update_one(
        {"email": email},
        {"$set": {"role": payload.role, "status": "Verified"}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("%s set role of %s to %s", admin.get("email"), email, payload.role)
    return {"matched": result.matched_count, "modified": result.modified_count}


@app.get("/users/role/{email}")
def get_role(email: str, db=Depends(get_db)):
    stored = db["users"].find_one({"email": email})
    return {"role": stored.get("role") if stored else None}


@app.get("/all-users/{email}")
def all_users(email: str, admin=Depends(auth.verify_admin), db=Depends(get_db)):
    return [to_public(d) for d in db["users"].find({"email": {"$ne": email}})]

# -----------------
# Plants
# -----------------
@app.post("/plants", dependencies=[Depends(get_db)])
def add_plant(payload: Plant, seller=Depends(auth.verify_seller)):
    new_id = create_document("plants", payload.model_dump(mode="json"))
    return {"insertedId": new_id}


@app.get("/plants", dependencies=[Depends(get_db)])
def list_plants():
    docs = get_documents("plants", limit=PLANTS_PAGE_SIZE)
    return [to_public(d) for d in docs]


@app.get("/plants/seller", dependencies=[Depends(get_db)])
def seller_plants(seller=Depends(auth.verify_seller)):
    docs = get_documents("plants", {"seller.email": seller.get("email")})
    return [to_public(d) for d in docs]


@app.get("/plants/{plant_id}")
def get_plant(plant_id: str, db=Depends(get_db)):
    doc = db["plants"].find_one({"_id": to_object_id(plant_id)})
    if not doc:
        raise HTTPException(status_code=404, detail="Not found")
    return to_public(doc)


@app.delete("/plants/{plant_id}")
def delete_plant(plant_id: str, seller=Depends(auth.verify_seller), db=Depends(get_db)):
    result = db["plants"].delete_one({"_id": to_object_id(plant_id)})
    return {"deletedCount": result.deleted_count}


@app.patch("/plants/quantity/{plant_id}")
def update_quantity(plant_id: str, payload: QuantityUpdate, user=Depends(auth.verify_token), db=Depends(get_db)):
    delta = payload.quantityToUpdate if payload.status == "increase" else -payload.quantityToUpdate
    result = db["plants"].update_one(
        {"_id": to_object_id(plant_id)},
        {"$inc": {"quantity": delta}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Not found")
    return {"matched": result.matched_count, "modified": result.modified_count}

# -----------------
# Checkout / Orders
# -----------------
@app.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentRequest, user=Depends(auth.verify_token), db=Depends(get_db)):
    plant = None
    if ObjectId.is_valid(payload.plantId):
        plant = db["plants"].find_one({"_id": ObjectId(payload.plantId)})
    if not plant:
        raise HTTPException(status_code=404, detail="plant not found")
    try:
        amount = payments.compute_amount(payload.quantity, plant.get("price"))
    except (TypeError, ValueError):
        # plants are stored as submitted, so the price may not be a number
        raise HTTPException(status_code=422, detail="plant price is not a number")
    try:
        client_secret = payments.create_payment_intent(amount)
    except stripe.StripeError as e:
        logger.error("PaymentIntent creation failed for plant %s: %s", payload.plantId, e)
        raise HTTPException(status_code=502, detail="payment gateway error")
    return {"clientSecret": client_secret}


def _mark_payment_verified(db, intent_id: str) -> None:
    result = db["orders"].update_many(
        {"transactionId": intent_id},
        {"$set": {"paymentVerified": True}},
    )
    logger.info("Verified payment %s on %s order(s)", intent_id, result.modified_count)


@app.post("/webhooks/stripe")
async def stripe_webhook(request: Request):
    db = get_db()
    payload = await request.body()
    signature = request.headers.get("Stripe-Signature", "")
    try:
        event = payments.parse_webhook(payload, signature)
    except payments.WebhookNotConfigured as e:
        logger.error("Stripe webhook misconfigured: %s", e)
        raise HTTPException(status_code=500, detail="webhook not configured")
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Stripe webhook signature failure: %s", e)
        raise HTTPException(status_code=400, detail="invalid signature")

    if event["type"] == "payment_intent.succeeded":
        await run_in_threadpool(_mark_payment_verified, db, event["data"]["object"]["id"])
    return {"received": True}


@app.post("/order", dependencies=[Depends(get_db)])
def place_order(payload: Order, background_tasks: BackgroundTasks):
    order = payload.model_dump(mode="json")
    order_id = create_document("orders", order)
    logger.info("Order %s placed by %s", order_id, (order.get("customer") or {}).get("email"))
    background_tasks.add_task(send_order_emails, order, order_id)
    return {"insertedId": order_id}


def _number(value) -> float:
    # $sum semantics: anything that is not a number counts as zero
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return 0


def _plant_object_id(value) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


def _orders_with_plants(db, query: Dict[str, Any]):
    orders = list(db["orders"].find(query))
    plant_ids = {_plant_object_id(o.get("plantId")) for o in orders} - {None}
    plants = {p["_id"]: p for p in db["plants"].find({"_id": {"$in": list(plant_ids)}})}

    result = []
    for o in orders:
        plant = plants.get(_plant_object_id(o.get("plantId")))
        # orders whose plant is gone drop out, same as an unwind after a lookup
        if plant is None:
            continue
        o["name"] = plant.get("name")
        o["image"] = plant.get("image")
        o["category"] = plant.get("category")
        result.append(to_public(o))
    return result


@app.get("/customer-orders/{email}")
def customer_orders(email: str, user=Depends(auth.verify_token), db=Depends(get_db)):
    return _orders_with_plants(db, {"customer.email": email})


@app.get("/seller-orders/{email}")
def seller_orders(email: str, seller=Depends(auth.verify_seller), db=Depends(get_db)):
    return _orders_with_plants(db, {"seller": email})


@app.patch("/orders/{order_id}")
def update_order_status(order_id: str, payload: StatusUpdate, seller=Depends(auth.verify_seller), db=Depends(get_db)):
    result = db["orders"].update_one(
        {"_id": to_object_id(order_id)},
        {"$set": {"status": payload.status}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"matched": result.matched_count, "modified": result.modified_count}


@app.delete("/orders/{order_id}")
def cancel_order(order_id: str, user=Depends(auth.verify_token), db=Depends(get_db)):
    query = {"_id": to_object_id(order_id)}
    order = db["orders"].find_one(query)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.get("status") == DELIVERED:
        raise HTTPException(status_code=409, detail="can not cancel once the product is delivered!")
    result = db["orders"].delete_one(query)
    return {"deletedCount": result.deleted_count}

# -----------------
# Admin
# -----------------
@app.get("/admin-stat")
def admin_stat(admin=Depends(auth.verify_admin), db=Depends(get_db)):
    total_revenue = 0
    total_order = 0
    by_day: Dict[str, Dict[str, Any]] = {}
    for o in db["orders"].find({}, {"quantity": 1, "price": 1}):
        day = o["_id"].generation_time.strftime("%Y-%m-%d")
        bucket = by_day.setdefault(day, {"date": day, "quantity": 0, "price": 0, "order": 0})
        bucket["quantity"] += _number(o.get("quantity"))
        bucket["price"] += _number(o.get("price"))
        bucket["order"] += 1
        total_revenue += _number(o.get("price"))
        total_order += 1

    return {
        "totalUser": db["users"].count_documents({}),
        "totalPlants": db["plants"].count_documents({}),
        "totalRevenue": total_revenue,
        "totalOrder": total_order,
        "chartData": [by_day[day] for day in sorted(by_day)],
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 9000))
    uvicorn.run(app, host="0.0.0.0", port=port)
