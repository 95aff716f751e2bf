from marshmallow import Schema, fields, validate


class RefreshRequestSchema(Schema):
    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class TokenPairOutSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer()
