"""initial marketplace schema

Revision ID: a1f0c2d3e4b5
Revises:
Create Date: 2025-06-01 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "a1f0c2d3e4b5"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _existing_tables() -> set:
    conn = op.get_bind()
    return set(sa.inspect(conn).get_table_names())


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # init_db 先执行 create_all，已存在的表直接跳过
    existing = _existing_tables()

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("code", sa.String(length=18), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=False),
            sa.Column("last_name", sa.String(length=100), nullable=False),
            sa.Column("phone", sa.String(length=30), nullable=True),
            sa.Column("address", sa.String(length=255), nullable=True),
            sa.Column("whatsapp", sa.String(length=30), nullable=True),
            sa.Column("role", sa.String(length=20), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False),
            sa.Column("email_verified", sa.Boolean(), nullable=False),
            sa.Column("verification_token", sa.String(length=64), nullable=True),
            sa.Column("verification_token_expiry", sa.DateTime(), nullable=True),
            sa.Column("reset_password_token", sa.String(length=64), nullable=True),
            sa.Column("reset_password_token_expiry", sa.DateTime(), nullable=True),
            sa.Column("credit_balance", sa.Numeric(12, 2), nullable=False),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("phone"),
        )
        op.create_index("ix_users_code", "users", ["code"], unique=True)
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_verification_token", "users", ["verification_token"])
        op.create_index("ix_users_reset_password_token", "users", ["reset_password_token"])

    if "categories" not in existing:
        op.create_table(
            "categories",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("icon", sa.String(length=50), nullable=True),
            sa.Column("active", sa.Boolean(), nullable=False),
            *_timestamps(),
        )
        op.create_index("ix_categories_name", "categories", ["name"], unique=True)

    if "publication_tarifs" not in existing:
        op.create_table(
            "publication_tarifs",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("type_name", sa.String(length=50), nullable=False),
            sa.Column("price", sa.Numeric(12, 2), nullable=False),
            sa.Column("duration_days", sa.Integer(), nullable=True),
            sa.Column("active", sa.Boolean(), nullable=False),
            *_timestamps(),
        )
        op.create_index("ix_publication_tarifs_type_name", "publication_tarifs", ["type_name"], unique=True)

    if "credit_config" not in existing:
        op.create_table(
            "credit_config",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("price_per_credit_fcfa", sa.Numeric(12, 2), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if "annonces" not in existing:
        op.create_table(
            "annonces",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("code", sa.String(length=18), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price", sa.Numeric(12, 2), nullable=False),
            sa.Column("category_id", sa.String(length=36), sa.ForeignKey("categories.id"), nullable=False),
            sa.Column("publication_type", sa.String(length=50), nullable=False),
            sa.Column("publication_credit_cost", sa.Numeric(12, 2), nullable=True),
            sa.Column("condition", sa.String(length=20), nullable=False),
            sa.Column("size", sa.String(length=50), nullable=True),
            sa.Column("brand", sa.String(length=100), nullable=True),
            sa.Column("color", sa.String(length=50), nullable=True),
            sa.Column("location", sa.String(length=200), nullable=True),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            sa.Column("images", sa.JSON(), nullable=False),
            sa.Column("seller_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("buyer_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("view_count", sa.Integer(), nullable=False),
            sa.Column("contact_count", sa.Integer(), nullable=False),
            sa.Column("tout_doit_partir", sa.Boolean(), nullable=False),
            sa.Column("original_price", sa.Numeric(12, 2), nullable=True),
            sa.Column("is_lot", sa.Boolean(), nullable=False),
            sa.Column("accept_payment_on_delivery", sa.Boolean(), nullable=False),
            *_timestamps(),
            sa.Column("published_at", sa.DateTime(), nullable=True),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_annonces_code", "annonces", ["code"], unique=True)
        op.create_index("ix_annonces_category_id", "annonces", ["category_id"])
        op.create_index("ix_annonces_publication_type", "annonces", ["publication_type"])
        op.create_index("ix_annonces_seller_id", "annonces", ["seller_id"])
        op.create_index("ix_annonces_buyer_id", "annonces", ["buyer_id"])
        op.create_index("ix_annonces_status", "annonces", ["status"])
        op.create_index("ix_annonces_created_at", "annonces", ["created_at"])
        op.create_index("ix_annonces_expires_at", "annonces", ["expires_at"])

    if "credit_transactions" not in existing:
        op.create_table(
            "credit_transactions",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("code", sa.String(length=18), nullable=False),
            sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("amount_fcfa", sa.Numeric(12, 2), nullable=False),
            sa.Column("credits_added", sa.Numeric(12, 2), nullable=False),
            sa.Column("payment_method", sa.String(length=20), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("transaction_id", sa.String(length=255), nullable=True),
            sa.Column("payment_provider_id", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("paid_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_credit_transactions_code", "credit_transactions", ["code"], unique=True)
        op.create_index("ix_credit_transactions_user_id", "credit_transactions", ["user_id"])
        op.create_index("ix_credit_transactions_payment_provider_id", "credit_transactions", ["payment_provider_id"])
        op.create_index("ix_credit_transactions_created_at", "credit_transactions", ["created_at"])

    if "payments" not in existing:
        op.create_table(
            "payments",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("annonce_id", sa.String(length=36), sa.ForeignKey("annonces.id", ondelete="CASCADE"), nullable=False),
            sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("amount", sa.Numeric(12, 2), nullable=False),
            sa.Column("payment_method", sa.String(length=30), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("transaction_id", sa.String(length=255), nullable=True),
            sa.Column("payment_provider_id", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("paid_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_payments_annonce_id", "payments", ["annonce_id"], unique=True)
        op.create_index("ix_payments_user_id", "payments", ["user_id"])
        op.create_index("ix_payments_payment_provider_id", "payments", ["payment_provider_id"])

    if "cart_items" not in existing:
        op.create_table(
            "cart_items",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("annonce_id", sa.String(length=36), sa.ForeignKey("annonces.id", ondelete="CASCADE"), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("user_id", "annonce_id", name="uq_cart_user_annonce"),
        )
        op.create_index("ix_cart_items_user_id", "cart_items", ["user_id"])
        op.create_index("ix_cart_items_annonce_id", "cart_items", ["annonce_id"])

    if "reviews" not in existing:
        op.create_table(
            "reviews",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("annonce_id", sa.String(length=36), sa.ForeignKey("annonces.id", ondelete="CASCADE"), nullable=False),
            sa.Column("reviewer_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("reviewee_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("rating", sa.Integer(), nullable=False),
            sa.Column("comment", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("annonce_id", "reviewer_id", name="uq_review_annonce_reviewer"),
        )
        op.create_index("ix_reviews_annonce_id", "reviews", ["annonce_id"])
        op.create_index("ix_reviews_reviewer_id", "reviews", ["reviewer_id"])
        op.create_index("ix_reviews_reviewee_id", "reviews", ["reviewee_id"])

    if "conversations" not in existing:
        op.create_table(
            "conversations",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("annonce_id", sa.String(length=36), sa.ForeignKey("annonces.id", ondelete="CASCADE"), nullable=False),
            sa.Column("buyer_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("seller_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("annonce_id", "buyer_id", name="uq_conversation_annonce_buyer"),
        )
        op.create_index("ix_conversations_annonce_id", "conversations", ["annonce_id"])
        op.create_index("ix_conversations_buyer_id", "conversations", ["buyer_id"])
        op.create_index("ix_conversations_seller_id", "conversations", ["seller_id"])

    if "messages" not in existing:
        op.create_table(
            "messages",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("conversation_id", sa.String(length=36), sa.ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False),
            sa.Column("sender_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("read_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])
        op.create_index("ix_messages_sender_id", "messages", ["sender_id"])

    if "action_logs" not in existing:
        op.create_table(
            "action_logs",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("user_id", sa.String(length=36), nullable=True),
            sa.Column("username", sa.String(length=255), nullable=True),
            sa.Column("user_role", sa.String(length=20), nullable=True),
            sa.Column("http_method", sa.String(length=10), nullable=False),
            sa.Column("request_uri", sa.String(length=500), nullable=False),
            sa.Column("query_string", sa.String(length=1000), nullable=True),
            sa.Column("resource_type", sa.String(length=50), nullable=True),
            sa.Column("resource_id", sa.String(length=64), nullable=True),
            sa.Column("action_label", sa.String(length=255), nullable=True),
            sa.Column("response_status", sa.Integer(), nullable=True),
            sa.Column("success", sa.Boolean(), nullable=False),
            sa.Column("client_ip", sa.String(length=45), nullable=True),
            sa.Column("user_agent", sa.String(length=500), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_action_logs_user_id", "action_logs", ["user_id"])
        op.create_index("ix_action_logs_resource_type", "action_logs", ["resource_type"])
        op.create_index("ix_action_logs_resource_id", "action_logs", ["resource_id"])
        op.create_index("ix_action_logs_created_at", "action_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "action_logs",
        "messages",
        "conversations",
        "reviews",
        "cart_items",
        "payments",
        "credit_transactions",
        "annonces",
        "credit_config",
        "publication_tarifs",
        "categories",
        "users",
    ):
        op.drop_table(table)
