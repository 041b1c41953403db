"""Models shared by the ORM tests."""

from sqlbridge import Model, relationship


class User(Model):
    fillable = ["name", "email", "age", "active", "settings"]
    hidden = ["email"]
    casts = {"age": "integer", "active": "boolean", "settings": "json"}

    @relationship
    def posts(self):
        return self.has_many("Post")

    @relationship
    def profile(self):
        return self.has_one("Profile")

    @relationship
    def roles(self):
        return self.belongs_to_many("Role").with_pivot("granted_by")


class Post(Model):
    fillable = ["title", "views", "user_id"]

    @relationship
    def user(self):
        return self.belongs_to(User)

    @relationship
    def comments(self):
        return self.has_many("Comment")


class Comment(Model):
    fillable = ["body", "post_id"]

    @relationship
    def post(self):
        return self.belongs_to(Post)


class Profile(Model):
    fillable = ["bio"]

    @relationship
    def user(self):
        return self.belongs_to(User)


class Role(Model):
    fillable = ["name"]
    timestamps = False

    @relationship
    def users(self):
        return self.belongs_to_many(User)


class Tag(Model):
    primary_key = "code"
    key_type = "string"
    incrementing = False
    timestamps = False
    guarded = []

    class Settings:
        table_name = "tags"


class Event(Model):
    guarded = []
    timestamps = False
    casts = {"starts_at": "datetime"}
