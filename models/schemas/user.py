from marshmallow import Schema, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _normalize_email(data):
    if isinstance(data, dict) and "email" in data:
        data = dict(data)
        data["email"] = _norm_email(data["email"])
    return data


class UserCreateSchema(Schema):
    first_name = fields.String(required=True, validate=validate.Length(min=2, max=100))
    last_name = fields.String(required=True, validate=validate.Length(min=2, max=100))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=6))

    @pre_load
    def normalize(self, data, **kwargs):
        return _normalize_email(data)


class UserLoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=6))

    @pre_load
    def normalize(self, data, **kwargs):
        return _normalize_email(data)


class UserRolesSchema(Schema):
    roles = fields.List(fields.String(), required=True, validate=validate.Length(min=1))


class UserOutSchema(Schema):
    id = fields.String()
    first_name = fields.String()
    last_name = fields.String()
    email = fields.String()
    roles = fields.List(fields.String())
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
