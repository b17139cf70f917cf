"""Family form: household, address, contacts, children and notes."""

import re
from datetime import datetime

from parish_admin.forms.fields import (
    ApiMapping,
    Computed,
    FieldContext,
    FieldDescriptor,
    FieldType,
    build_from_fields,
    validate_fields,
    validate_row_array,
)
from parish_admin.forms.mapping import FormSchema
from parish_admin.forms.options import Options
from parish_admin.utils.helpers import (
    date_string_to_iso,
    digits_only,
    is_valid_date,
    is_yes,
    iso_to_date_string,
    list_to_string,
    make_id,
    string_to_list,
)

ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

PARENT_CONTACT_MESSAGE = "Contacts must have at least one with Father/Mother/Guardian relationship"

_as_bool = ApiMapping(to_api=lambda v, obj: is_yes(v), from_api=lambda v, obj: is_yes(v))


def _validate_zip(value, ctx):
    return "must be 5 digits" if not ZIP_PATTERN.match(str(value or "").strip()) else ""


def _validate_phone(value, ctx):
    if not str(value or "").strip() or len(digits_only(value)) != 10:
        return "must be 10 digit"
    return ""


def _validate_email(value, ctx):
    text = str(value or "").strip()
    return "leave blank or enter valid email" if text and not EMAIL_PATTERN.match(text) else ""


def _validate_dob(value, ctx):
    return "Invalid Date" if not is_valid_date(value) else ""


class FamilyForm:
    """Field schema and form helpers for families.

    Children must carry a parent's last name unless the row records a name
    exception with notes.
    """

    def __init__(self, options: Options):
        self.options = options
        opts = options

        self.main = [
            FieldDescriptor(
                "id", "Family ID", default=Computed(lambda ctx: make_id("F")), disabled=True, required=True
            ),
            FieldDescriptor(
                "parishMember",
                "Parish Member",
                FieldType.SELECT,
                default=True,
                required=True,
                sel_opt=Computed(lambda f, ctx: opts.yes_no_options),
                api=_as_bool,
            ),
            FieldDescriptor(
                "parishNumber",
                "Parish Number",
                default="",
                required=True,
                show=Computed(lambda ctx: ctx.form.get("parishMember") is True),
            ),
        ]
        self.address = [
            FieldDescriptor("street", "Number and Street", default="", required=True),
            FieldDescriptor("city", "City", default="", required=True),
            FieldDescriptor("state", "State", default="CA", disabled=True),
            FieldDescriptor("zip", "Zip Code", default="", validate=_validate_zip),
        ]
        self.contacts = [
            FieldDescriptor("lastName", "Last Name", default="", required=True),
            FieldDescriptor("firstName", "First Name", default="", required=True),
            FieldDescriptor("middle", "Middle", default=""),
            FieldDescriptor(
                "relationship",
                "Relationship",
                FieldType.SELECT,
                default="",
                required=True,
                sel_opt=Computed(lambda f, ctx: opts.relationship_options),
            ),
            FieldDescriptor(
                "phone", "Contact Phone", FieldType.TEL, default="", placeholder="(714) 123-4567",
                validate=_validate_phone,
            ),
            FieldDescriptor("email", "Email Address", default="", validate=_validate_email),
            FieldDescriptor("isEmergency", "Primary Contact", FieldType.CHECKBOX, default=False, api=_as_bool),
        ]
        self.children = [
            FieldDescriptor("childId", "Child ID", default=Computed(lambda ctx: make_id("S")), show=False),
            FieldDescriptor(
                "lastName", "Last Name", default="", required=True, validate=self._validate_child_last_name
            ),
            FieldDescriptor("firstName", "First Name", default="", required=True),
            FieldDescriptor("middle", "Middle", default=""),
            FieldDescriptor("saintName", "Saint Name", default="", required=True),
            FieldDescriptor(
                "dob",
                "Date of Birth",
                default="",
                required=True,
                placeholder="MM/DD/YYYY",
                validate=_validate_dob,
                api=ApiMapping(
                    to_api=lambda v, obj: date_string_to_iso(v),
                    from_api=lambda v, obj: iso_to_date_string(v),
                ),
            ),
            FieldDescriptor(
                "allergies",
                "Allergies (comma)",
                default="",
                api=ApiMapping(
                    to_api=lambda v, obj: string_to_list(v),
                    from_api=lambda v, obj: list_to_string(v),
                ),
            ),
            FieldDescriptor(
                "isNameException",
                "Name Exception",
                FieldType.CHECKBOX,
                default=False,
                required=True,
                show=Computed(self.needs_name_exception),
                api=_as_bool,
            ),
            FieldDescriptor(
                "exceptionNotes",
                "Exception Notes",
                default="",
                required=True,
                show=Computed(self.needs_name_exception),
            ),
        ]
        self.notes = [
            FieldDescriptor(
                "timeStamp",
                "Time Stamp",
                default=Computed(lambda ctx: datetime.now().strftime("%m/%d/%Y, %I:%M:%S %p")),
                disabled=True,
            ),
            FieldDescriptor("note", "Family Note", default="", required=True),
            FieldDescriptor(
                "updatedBy",
                "Updated By",
                FieldType.SELECT,
                default="",
                required=True,
                sel_opt=Computed(lambda f, ctx: opts.volunteers_options),
            ),
        ]
        self.schema = FormSchema(
            main=self.main,
            objects={"address": self.address},
            rows={"contacts": self.contacts, "children": self.children, "notes": self.notes},
        )

    # --- name rules ---

    def parent_last_names(self, form: dict) -> set[str]:
        """Lower-cased last names of contacts whose relationship counts as a parent."""
        parents = self.options.parents
        names = set()
        for contact in form.get("contacts") or []:
            if str(contact.get("relationship") or "").strip() not in parents:
                continue
            last = str(contact.get("lastName") or "").strip().lower()
            if last:
                names.add(last)
        return names

    def needs_name_exception(self, ctx: FieldContext) -> bool:
        last = str((ctx.row or {}).get("lastName") or "").strip().lower()
        return last not in self.parent_last_names(ctx.form)

    def _validate_child_last_name(self, value, ctx: FieldContext) -> str:
        row = ctx.row or {}
        matches_parent = str(value or "").strip().lower() in self.parent_last_names(ctx.form)
        excused = row.get("isNameException") and str(row.get("exceptionNotes") or "").strip()
        return "mismatch w/ parents" if not matches_parent and not excused else ""

    def normalize_name_exceptions(self, form: dict) -> None:
        """Clear the exception flag and notes on children that now match a parent."""
        for child in form.get("children") or []:
            if not self.needs_name_exception(FieldContext(form=form, row=child)):
                child["isNameException"] = False
                child["exceptionNotes"] = ""

    # --- factories ---

    def new_contact(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.contacts, overrides=overrides)

    def new_child(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.children, overrides=overrides)

    def new_note(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.notes, overrides=overrides)

    def new(self, overrides: dict | None = None) -> dict:
        form = build_from_fields(self.main, overrides=overrides)
        form["address"] = build_from_fields(self.address)
        form["contacts"] = [self.new_contact()]
        form["children"] = [self.new_child()]
        form["notes"] = []
        return form

    # --- validation ---

    def validate(self, form: dict) -> dict:
        """Error bag shaped like the form; empty dicts/lists mean valid."""
        ctx = FieldContext(form=form)
        errors = {
            "main": validate_fields(self.main, form, ctx),
            "address": validate_fields(self.address, form.get("address") or {}, ctx),
            "contacts": validate_row_array(self.contacts, form.get("contacts"), ctx),
            "children": validate_row_array(self.children, form.get("children"), ctx),
            "notes": validate_row_array(self.notes, form.get("notes"), ctx),
        }
        parents = self.options.parents
        if not any(c.get("relationship") in parents for c in form.get("contacts") or []):
            errors["contactErrors"] = PARENT_CONTACT_MESSAGE
        return errors
