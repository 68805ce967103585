"""
Checkout — cart to confirmed bookings.

Level 4: bookcart.coordinator
Level 3: bookcart.saga
Level 2: kungfu.Result
"""

from kungfu import Ok, Error

from bookcart import pricing as P
from bookcart.domain import CustomerInfo, PaymentMethod
from bookcart.ledger import booking_details
from examples._infra import GEL, LASH, NAIL_ART, PEDICURE, Shop, banner, open_shop, run

CUSTOMER = CustomerInfo("Ada Lovelace", "ada@example.com", "+44 20 7946 0958")


def fill_cart(shop: Shop) -> None:
    gel = shop.cart.add_to_cart("Glow Studio", "glow.png", "Nails", GEL, (NAIL_ART,))
    ped = shop.cart.add_to_cart("Glow Studio", "glow.png", "Nails", PEDICURE)
    lash = shop.cart.add_to_cart("Luxe Lashes", "luxe.png", "Lashes", LASH)

    drafts = shop.checkout.drafts
    drafts.update(gel.id, selected_date="2030-06-01", selected_time="10:00 AM", notes="Almond shape")
    drafts.update(ped.id, selected_date="2030-06-01", selected_time="11:00 AM")
    drafts.update(lash.id, selected_date="2030-06-02", selected_time="14:00", is_deposit_only=True)


def show_totals(shop: Shop) -> None:
    for line in shop.checkout.effective_lines():
        kind = "deposit" if line.is_deposit else "full"
        print(f"  {line.item.service_name:<14} {P.format_price(line.effective_price):>9}  ({kind})")
    print(f"  {'due now':<14} {P.format_price(shop.checkout.final_total()):>9}")


async def happy_path() -> None:
    banner("Checkout: three services, one deposit")
    shop = open_shop()
    fill_cart(shop)
    show_totals(shop)

    shop.checkout.subscribe(lambda state: print(f"  → {state.stage.value}"))
    shop.checkout.begin_checkout()

    match await shop.checkout.confirm_payment(PaymentMethod.CARD, CUSTOMER):
        case Ok(receipt):
            print(f"\n✓ Charged {P.format_price(receipt.amount_charged)} ({receipt.payment.transaction_id})")
            for booking in receipt.bookings:
                print(f"  {booking_details(booking)}")
        case Error(e):
            print(f"\n✗ {e.user_message}")

    print(f"  cart now holds {shop.cart.total_items} item(s), {shop.notifications.unread_count} unread notification(s)")


async def declined_then_retry() -> None:
    banner("Checkout: card declined, retry")
    shop = open_shop()
    fill_cart(shop)
    shop.processor.decline_next()

    shop.checkout.begin_checkout()
    match await shop.checkout.confirm_payment(PaymentMethod.CARD):
        case Ok(_):
            print("✓ Paid first time")
        case Error(e):
            print(f"✗ {e.user_message} (stage: {shop.checkout.stage.value})")

    match await shop.checkout.retry_payment():
        case Ok(receipt):
            print(f"✓ Retry booked {len(receipt.bookings)} appointment(s)")
        case Error(e):
            print(f"✗ {e.user_message}")


async def ledger_conflict() -> None:
    banner("Checkout: slot taken by the time we pay")
    shop = open_shop(latency_seconds=0)
    fill_cart(shop)
    shop.checkout.begin_checkout()
    await shop.checkout.confirm_payment(PaymentMethod.PAYPAL)

    # same slots again
    fill_cart(shop)
    match shop.checkout.begin_checkout():
        case Error(e):
            print(f"✗ {e.user_message}")
            return
        case Ok(_):
            pass

    match await shop.checkout.confirm_payment(PaymentMethod.PAYPAL):
        case Ok(_):
            print("✓ Booked")
        case Error(e):
            print(f"✗ {e.user_message}")
            print(f"  stage: {shop.checkout.stage.value}, retryable: {e.retryable}")
            print(f"  cart still holds {shop.cart.total_items} item(s)")


async def main() -> None:
    await happy_path()
    await declined_then_retry()
    await ledger_conflict()


if __name__ == "__main__":
    run(main)
