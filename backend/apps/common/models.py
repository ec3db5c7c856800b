"""
Abstract base models and mixins
"""
from django.db import models


class CreatedAtModel(models.Model):
    """
    Abstract base class with a store-assigned creation timestamp
    """
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        abstract = True


class ImmutableModel(models.Model):
    """
    Abstract base class for append-only rows.

    Rows can be inserted once. Updates and deletes raise ValueError.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Override save to prevent updates"""
        if not self._state.adding:
            raise ValueError(
                f"{type(self).__name__} rows are immutable. Cannot update existing rows."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion"""
        raise ValueError(f"{type(self).__name__} rows are immutable. Cannot delete rows.")
