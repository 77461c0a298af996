"""
Failure kinds of the checkout flow.

They never reach the HTTP layer as exceptions: CheckoutService.finalize turns
them into a failed CheckoutResult carrying ``code`` and ``message``.
"""


class CheckoutError(Exception):
    code = "unknown_failure"
    default_message = "Failed to finalize checkout"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(CheckoutError):
    code = "invalid_input"
    default_message = "Invalid checkout input"


class CustomerNotFound(CheckoutError):
    code = "customer_not_found"
    default_message = "Customer not found or unauthorized"


class InvalidServiceReference(CheckoutError):
    code = "invalid_service_reference"

    def __init__(self, service_ids):
        self.service_ids = list(service_ids)
        ids = ", ".join(str(service_id) for service_id in self.service_ids)
        super().__init__(f"Invalid service IDs: {ids}. Please refresh and try again.")


class MembershipPlanNotFound(CheckoutError):
    code = "membership_plan_not_found"

    def __init__(self, plan_id):
        self.plan_id = plan_id
        super().__init__(f"Membership plan {plan_id} not found")


class InvalidReference(CheckoutError):
    code = "invalid_reference"
    default_message = "Invalid service or data reference. Please refresh the page and try again."


class DuplicateTransaction(CheckoutError):
    code = "duplicate_transaction"
    default_message = "Duplicate transaction detected. Please try again."


class UnknownFailure(CheckoutError):
    code = "unknown_failure"
