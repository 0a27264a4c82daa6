"""
Data types for scheduled resources.

A "scheduled resource" is something that can be used for one thing at a time.

Example: A Room (resource) is scheduled for a meeting (resource use block)
titled "Weekly Staff Meeting" tomorrow from 9am to 11am.
"""

from typing import Any, Optional


# Separator between kind and sub-id in a tag
TAG_SEPARATOR = "_"


def compose_tag(kind: str, sub_id: str) -> str:
    """Combine kind and sub-id into the resource's tag, e.g. ``Channel_702``.

    Tags are unique per (kind, sub_id) as long as kinds do not themselves
    contain the separator in a way that makes two pairs collide.
    """
    return f"{kind}{TAG_SEPARATOR}{sub_id}"


class ScheduledResource:
    """
    Handle for one schedulable resource: a kind plus a sub-id.

    The sub-id *may* be a database id but need not be. It is passed to the
    kind's use-block provider to select that resource's blocks.

    Handles are created by a ResourceRegistry, which keeps exactly one per
    tag. Equality and hashing are by identity, so handles can key result
    mappings across repeated queries against the same registry.

    Attributes:
        kind: Resource category (e.g. "Channel", "Room")
        sub_id: Identifier within that kind
        tag: ``kind_sub_id``
    """

    __slots__ = ("kind", "sub_id", "tag", "_label", "_title")

    def __init__(self, kind: str, sub_id: str):
        self.kind = kind
        self.sub_id = sub_id
        self.tag = compose_tag(kind, sub_id)
        self._label: Optional[str] = None
        self._title: Optional[str] = None

    @property
    def label(self) -> str:
        """Display label for the resource's row; the tag when unset."""
        return self._label if self._label is not None else self.tag

    @label.setter
    def label(self, value: Optional[str]) -> None:
        self._label = value

    @property
    def title(self) -> str:
        """Display title (tooltip) for the resource; the tag when unset."""
        return self._title if self._title is not None else self.tag

    @title.setter
    def title(self, value: Optional[str]) -> None:
        self._title = value

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "sub_id": self.sub_id,
            "tag": self.tag,
            "label": self.label,
            "title": self.title,
        }

    def __str__(self) -> str:
        return self.tag

    def __repr__(self) -> str:
        return f"<ScheduledResource {self.tag!r}>"


class ResourceUseBlock:
    """
    The USE of a resource for an interval of time.

    Pairs a resource handle with one raw record returned by that kind's
    provider (e.g. a Program on a Channel, a Meeting in a Room). Start and
    end times read and write through to the record so the boundary layer
    can normalize them in place.
    """

    __slots__ = ("resource", "block")

    def __init__(self, resource: ScheduledResource, block: Any):
        self.resource = resource
        self.block = block

    @property
    def kind(self) -> str:
        return self.resource.kind

    @property
    def start_time(self) -> Any:
        return self.block.start_time

    @start_time.setter
    def start_time(self, value: Any) -> None:
        self.block.start_time = value

    @property
    def end_time(self) -> Any:
        return self.block.end_time

    @end_time.setter
    def end_time(self, value: Any) -> None:
        self.block.end_time = value

    def to_dict(self) -> dict[str, Any]:
        """Record payload plus times and the resource tag."""
        payload = getattr(self.block, "payload", None) or {}
        d = dict(payload)
        d["start_time"] = self.start_time
        d["end_time"] = self.end_time
        d["resource"] = self.resource.tag
        return d

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceUseBlock):
            return NotImplemented
        return (
            self.resource.tag == other.resource.tag
            and self.to_dict() == other.to_dict()
        )

    __hash__ = None  # type: ignore[assignment]  # times are mutable

    def __repr__(self) -> str:
        return (
            f"<ResourceUseBlock {self.resource.tag} "
            f"{self.start_time!r}..{self.end_time!r}>"
        )
