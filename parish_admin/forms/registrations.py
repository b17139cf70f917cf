"""Registration form.

A registration snapshots parts of the family and event it links (contact
names, event title/year/type, child names) so receipts and rosters stay
readable even if the source records change later. The option lists and
change handlers depend on controller state, so they are supplied through a
``RegistrationHooks`` object.
"""

from datetime import datetime
from typing import Any

from parish_admin.domain.eligibility import PREREQ_NOT_MET_MESSAGE, RuleCodes, check_prerequisites
from parish_admin.forms.fields import (
    Computed,
    FieldContext,
    FieldDescriptor,
    FieldType,
    build_from_fields,
)
from parish_admin.forms.mapping import FormSchema
from parish_admin.forms.options import Options
from parish_admin.utils.helpers import make_id

PENDING_STATUS = "pending"
STATUS_MESSAGE = "Status must be paid or cancelled"
SELECT_CHILD_MESSAGE = "Select at least one child."


class RegistrationHooks:
    """Callbacks the registration fields call into.

    The defaults offer nothing and do nothing; the registrations controller
    overrides them with its own state.
    """

    def is_create(self) -> bool:
        return False

    def is_edit(self) -> bool:
        return False

    def event_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        return []

    def signer_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        return []

    def child_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        return []

    def age_group_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        return []

    def receiver_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        return []

    def on_family_change(self, descriptor: FieldDescriptor, ctx: FieldContext) -> None:
        pass

    def on_event_change(self, descriptor: FieldDescriptor, ctx: FieldContext) -> None:
        pass

    def on_child_change(self, descriptor: FieldDescriptor, ctx: FieldContext) -> None:
        pass


class RegistrationForm:
    """Field schema and form helpers for registrations."""

    def __init__(self, options: Options, hooks: RegistrationHooks | None = None):
        self.options = options
        self.hooks = hooks or RegistrationHooks()
        opts, hooks = options, self.hooks

        self.main = [
            FieldDescriptor("id", "Registration ID", default=Computed(lambda ctx: make_id("R")), disabled=True),
            FieldDescriptor(
                "familyId",
                "Family ID",
                FieldType.DATALIST,
                default="",
                placeholder="Start typing ID or name…",
                on_change=hooks.on_family_change,
                disabled=Computed(lambda ctx: hooks.is_edit()),
            ),
            FieldDescriptor(
                "eventId",
                "Registration Event",
                FieldType.SELECT,
                default="",
                sel_opt=Computed(hooks.event_options),
                on_change=hooks.on_event_change,
                disabled=Computed(
                    lambda ctx: (hooks.is_create() and not ctx.form.get("familyId")) or hooks.is_edit()
                ),
            ),
            FieldDescriptor(
                "parishMember",
                "Parish Member",
                FieldType.SELECT,
                default=False,
                disabled=True,
                sel_opt=Computed(lambda f, ctx: opts.yes_no_options),
                show=Computed(lambda ctx: bool(ctx.form.get("familyId"))),
            ),
        ]
        self.meta = [
            FieldDescriptor(
                "status", "Status", FieldType.SELECT, default=PENDING_STATUS,
                sel_opt=Computed(lambda f, ctx: opts.reg_status_options),
            ),
            FieldDescriptor(
                "acceptedBy", "Accepted & Signed By", FieldType.SELECT, default="",
                sel_opt=Computed(hooks.signer_options),
            ),
            FieldDescriptor("createdAt", "Created", default=None, disabled=True, show=False),
            FieldDescriptor("updatedAt", "Updated", default=None, disabled=True, show=False),
        ]
        self.event_snapshot = [
            FieldDescriptor("title", "Event Description", default="", disabled=True),
            FieldDescriptor("year", "School Year", default="", disabled=True),
            FieldDescriptor("programId", "Program", default="", disabled=True),
            FieldDescriptor("eventType", "Event Type", default="", disabled=True),
        ]
        self.contact_snapshot = [
            FieldDescriptor("name", "Contact Name", default="", disabled=True),
            FieldDescriptor("relationship", "Relationship", default="", disabled=True),
            FieldDescriptor("phone", "Phone", default="", disabled=True),
        ]
        self.children_row = [
            FieldDescriptor(
                "childId",
                "Child Name",
                FieldType.SELECT,
                default="",
                sel_opt=Computed(hooks.child_options),
                on_change=hooks.on_child_change,
            ),
            FieldDescriptor("fullName", "Full Name", default="", disabled=True, show=False),
            FieldDescriptor("saintName", "Saint Name", default="", disabled=True),
            FieldDescriptor(
                "dob", "Age to Grade", FieldType.SELECT, default="", disabled=True,
                sel_opt=Computed(hooks.age_group_options),
            ),
            FieldDescriptor("allergies", "Allergies", default=[], disabled=True),
        ]
        self.payments_row = [
            FieldDescriptor(
                "code", "Fee Type", FieldType.SELECT, default="", disabled=True,
                sel_opt=Computed(lambda f, ctx: opts.fee_codes),
            ),
            FieldDescriptor("unitAmount", "Unit Price", FieldType.NUMBER, default=0, disabled=True),
            FieldDescriptor("quantity", "Quantity", FieldType.NUMBER, default=1, disabled=True),
            FieldDescriptor("amount", "Total Amount", FieldType.NUMBER, default=0, disabled=True),
            FieldDescriptor(
                "method", "Method", FieldType.SELECT, default="",
                sel_opt=Computed(lambda f, ctx: opts.payment_method_options),
            ),
            FieldDescriptor(
                "txnRef",
                "Ref/Check #",
                default="",
                show=Computed(lambda ctx: ((ctx.row or {}).get("method") or "") != self.codes.cash),
            ),
            FieldDescriptor("receiptNo", "Receipt #", default=""),
            FieldDescriptor(
                "receivedBy", "Received By", FieldType.SELECT, default="",
                sel_opt=Computed(hooks.receiver_options),
            ),
        ]
        self.notes = [
            FieldDescriptor(
                "timeStamp",
                "Time Stamp",
                default=Computed(lambda ctx: datetime.now().strftime("%m/%d/%Y, %I:%M:%S %p")),
                disabled=True,
            ),
            FieldDescriptor("note", "Registration Note", default="", required=True),
            FieldDescriptor(
                "updatedBy", "Updated By", FieldType.SELECT, default="", required=True,
                sel_opt=Computed(lambda f, ctx: opts.volunteers_options),
            ),
        ]
        self.schema = FormSchema(
            main=self.main + self.meta,
            objects={"event": self.event_snapshot},
            rows={
                "contacts": self.contact_snapshot,
                "children": self.children_row,
                "payments": self.payments_row,
                "notes": self.notes,
            },
        )

    @property
    def codes(self) -> RuleCodes:
        return RuleCodes.from_options(self.options)

    # --- factories ---

    def new_contact(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.contact_snapshot, overrides=overrides)

    def new_child(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.children_row, overrides=overrides)

    def new_payment(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.payments_row, overrides=overrides)

    def new_note(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.notes, overrides=overrides)

    def new(self, overrides: dict | None = None) -> dict:
        form = build_from_fields(self.main + self.meta, overrides=overrides)
        form["event"] = build_from_fields(self.event_snapshot)
        form["contacts"] = []
        form["children"] = []
        form["payments"] = []
        form["notes"] = []
        return form

    # --- validation ---

    def validate(self, form: dict, event: dict | None, registrations: list[dict]) -> dict[str, Any]:
        """Check a registration form.

        Args:
            form: UI-shaped registration.
            event: The selected event record, if any.
            registrations: Every known registration, for the prerequisite check.

        Returns:
            ``{"main": {...}, "children": [...], "payments": [...]}``.
        """
        codes = self.codes
        main: dict[str, str] = {}
        if not form.get("eventId"):
            main["eventId"] = "required"
        elif event and form.get("familyId"):
            ok, message = check_prerequisites(event, form.get("familyId"), registrations)
            if not ok:
                main["eventId"] = message or PREREQ_NOT_MET_MESSAGE
        if not form.get("familyId"):
            main["familyId"] = "required"
        if not form.get("acceptedBy"):
            main["acceptedBy"] = "required"
        if not form.get("status") or form.get("status") == PENDING_STATUS:
            main["status"] = STATUS_MESSAGE

        children_errors: list[dict] = []
        if (event or {}).get("level") == codes.per_child:
            children = form.get("children") or []
            if not any(c.get("childId") for c in children):
                main["childrenRoot"] = SELECT_CHILD_MESSAGE
            children_errors = [{} if c.get("childId") else {"childId": "required"} for c in children]

        payment_errors = []
        for p in form.get("payments") or []:
            row: dict[str, str] = {}
            method = str(p.get("method") or "").strip()
            if not method:
                row["method"] = "required"
            if not str(p.get("txnRef") or "").strip() and method != codes.cash:
                row["txnRef"] = "required"
            if not str(p.get("receiptNo") or "").strip():
                row["receiptNo"] = "required"
            if not str(p.get("receivedBy") or "").strip():
                row["receivedBy"] = "required"
            payment_errors.append(row)

        return {"main": main, "children": children_errors, "payments": payment_errors}
