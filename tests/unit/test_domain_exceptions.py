"""Unit tests for domain exceptions and their API error bodies."""

from treasury.domain.exceptions import (
    AuthenticationException,
    AuthorizationException,
    AuthorizationIndeterminateException,
    ConflictException,
    DuplicateAssignmentException,
    DuplicateCodeException,
    OutboxTransactionRequiredException,
    PoisonMessageException,
    ResourceNotFoundException,
    SystemRoleProtectedException,
    TransientPublishFailure,
    TreasuryException,
    ValidationException,
)


def test_base_exception_defaults_error_code_to_class_name() -> None:
    """TreasuryException without error_code uses the class name."""
    exc = TreasuryException("boom")
    assert exc.error_code == "TreasuryException"
    assert exc.to_dict() == {"error": "TreasuryException", "message": "boom", "details": {}}


def test_validation_exception_carries_field() -> None:
    exc = ValidationException("bad", field="expires_at")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "expires_at"}
    assert ValidationException("bad").details == {}


def test_authorization_exception_names_permission_or_role() -> None:
    """The message and details name what was required."""
    by_permission = AuthorizationException(permission="treasury.payments.create")
    assert by_permission.error_code == "PERMISSION_DENIED"
    assert by_permission.message == "Permission denied: treasury.payments.create"
    assert by_permission.details == {"permission": "treasury.payments.create"}

    by_role = AuthorizationException(role="finance_admin")
    assert by_role.message == "Role required: finance_admin"
    assert by_role.details == {"role": "finance_admin"}

    assert AuthorizationException(message="Tenant mismatch").message == "Tenant mismatch"


def test_indeterminate_is_not_a_denial_subclass() -> None:
    """Indeterminate has its own code so the boundary can map it to 503."""
    exc = AuthorizationIndeterminateException("OperationalError")
    assert exc.error_code == "AUTHORIZATION_INDETERMINATE"
    assert exc.details == {"reason": "OperationalError"}
    assert not isinstance(exc, AuthorizationException)


def test_conflict_family_shares_base() -> None:
    duplicate = DuplicateAssignmentException(
        "Role already assigned to user",
        assignment_type="assignment",
        details_extra={"user_id": "u1"},
    )
    assert isinstance(duplicate, ConflictException)
    assert duplicate.error_code == "DUPLICATE_ASSIGNMENT"
    assert duplicate.details == {"user_id": "u1", "assignment_type": "assignment"}

    code = DuplicateCodeException("permission", "treasury.payments.view")
    assert isinstance(code, ConflictException)
    assert code.details == {"entity_type": "permission", "code": "treasury.payments.view"}

    protected = SystemRoleProtectedException("finance_admin")
    assert isinstance(protected, ConflictException)
    assert protected.error_code == "SYSTEM_ROLE_PROTECTED"


def test_not_found_and_authentication() -> None:
    exc = ResourceNotFoundException("role", "cashier")
    assert exc.message == "role not found: cashier"
    assert exc.details == {"resource_type": "role", "resource_id": "cashier"}
    assert AuthenticationException().error_code == "AUTHENTICATION_ERROR"


def test_messaging_exceptions_keep_topic_and_reason() -> None:
    publish = TransientPublishFailure("treasury.rbac.role.assigned", "timeout")
    assert publish.details == {"topic": "treasury.rbac.role.assigned", "reason": "timeout"}

    poison = PoisonMessageException("auth.user.created", "1-0", "email: missing")
    assert poison.error_code == "POISON_MESSAGE"
    assert poison.details["message_id"] == "1-0"

    outbox = OutboxTransactionRequiredException("rbac.role.assigned")
    assert outbox.details == {"event_type": "rbac.role.assigned"}
