"""In-memory store of per-correspondent style records."""

from voiceprint.schemas.style import StyleRecord


class StyleProfileStore:
    """
    Style records keyed by contact id, with secondary indexes on email and name.

    Lookups by any of the three keys are constant time. Putting a record for
    an existing contact id replaces the previous record wholesale.
    """

    def __init__(self):
        self._by_id: dict[str, StyleRecord] = {}
        self._by_email: dict[str, str] = {}
        self._by_name: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def put(self, record: StyleRecord) -> None:
        previous = self._by_id.get(record.contact_id)
        if previous is not None:
            self._unindex(previous)

        self._by_id[record.contact_id] = record
        if record.contact_email:
            self._by_email[record.contact_email.lower()] = record.contact_id
        if record.contact_name:
            self._by_name[record.contact_name.lower()] = record.contact_id

    def replace_all(self, records: list[StyleRecord]) -> None:
        """Store a batch of records, replacing any prior record for the same contact."""
        for record in records:
            self.put(record)

    def get(self, key: str | None) -> StyleRecord | None:
        """Look up a record by contact id, email, or display name."""
        if not key:
            return None
        if key in self._by_id:
            return self._by_id[key]

        lowered = key.lower()
        contact_id = self._by_email.get(lowered) or self._by_name.get(lowered)
        return self._by_id.get(contact_id) if contact_id else None

    def find_for_sender(self, name: str | None, email: str | None) -> StyleRecord | None:
        """Record for a message sender, matching email first and then name."""
        return self.get(email) or self.get(name)

    def all(self) -> list[StyleRecord]:
        return list(self._by_id.values())

    def clear(self) -> None:
        self._by_id.clear()
        self._by_email.clear()
        self._by_name.clear()

    def _unindex(self, record: StyleRecord) -> None:
        if record.contact_email and self._by_email.get(record.contact_email.lower()) == record.contact_id:
            del self._by_email[record.contact_email.lower()]
        if record.contact_name and self._by_name.get(record.contact_name.lower()) == record.contact_id:
            del self._by_name[record.contact_name.lower()]
