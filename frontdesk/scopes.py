from enum import StrEnum


class FrontdeskScope(StrEnum):
    # Front desk staff
    READ = "bookings:read"  # view bookings, summaries, cancellation previews
    PAYMENTS_WRITE = "payments:write"  # register money received
    EXTRAS_WRITE = "extras:write"  # add minibar, laundry, ... to a stay
    CHECKOUT = "bookings:checkout"
    CANCEL = "bookings:cancel"

    # Supervisor scopes
    DISCOUNT = "discounts:apply"  # manual discounts on the room charge
    FORCE_CHECKOUT = "bookings:force_checkout"  # close overdue stays with a balance

    # Voucher ledger
    VOUCHERS_READ = "vouchers:read"
    VOUCHERS_ISSUE = "vouchers:issue"
    VOUCHERS_REDEEM = "vouchers:redeem"

    # Admin
    ADMIN = "admin:frontdesk"


FRONTDESK_SCOPE_DESCRIPTIONS: dict[str, str] = {
    FrontdeskScope.READ: "View bookings and their financial summary.",
    FrontdeskScope.PAYMENTS_WRITE: "Register payments received at the front desk.",
    FrontdeskScope.EXTRAS_WRITE: "Add extra charges to an active stay.",
    FrontdeskScope.CHECKOUT: "Check guests out.",
    FrontdeskScope.CANCEL: "Cancel bookings before arrival.",
    FrontdeskScope.DISCOUNT: "Apply manual discounts to the room charge.",
    FrontdeskScope.FORCE_CHECKOUT: "Force checkout of overdue stays with a balance.",
    FrontdeskScope.VOUCHERS_READ: "Look up and validate credit vouchers.",
    FrontdeskScope.VOUCHERS_ISSUE: "Issue credit vouchers by hand.",
    FrontdeskScope.VOUCHERS_REDEEM: "Apply a credit voucher to a booking.",
    FrontdeskScope.ADMIN: "Every front-desk operation (admin).",
}
