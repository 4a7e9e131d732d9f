"""Purchase log bookkeeping: one entry per calendar day."""

from datetime import date

from .categories import CategoryRegistry
from .models import AppState, DayPurchase, DayPurchaseGroup, PurchaseLog, PurchaseLogItem


class PurchaseBook:
    """Append-only-per-day ledger of completed purchases.

    Repeated purchases of the same product on one day are kept as separate
    entries so per-day repeat counts survive.
    """

    def __init__(self, state: AppState):
        self.state = state

    @property
    def logs(self) -> list[PurchaseLog]:
        return self.state.logs

    def entry_for(self, day: date) -> PurchaseLog | None:
        for log in self.logs:
            if log.date == day:
                return log
        return None

    def record(self, name: str, category_id: str, day: date) -> PurchaseLog:
        """Append a purchase to the day's entry, creating it if absent."""
        entry = self.entry_for(day)
        if entry is None:
            entry = PurchaseLog(date=day)
            self.state.logs.insert(0, entry)
        entry.items.append(PurchaseLogItem(name=name, category_id=category_id))
        return entry

    def remove_last(self, name: str, day: date) -> bool:
        """Remove the most recent purchase of a product on a day.

        Returns:
            True if an entry was removed
        """
        entry = self.entry_for(day)
        if entry is None:
            return False

        wanted = name.lower()
        for index in range(len(entry.items) - 1, -1, -1):
            if entry.items[index].name.lower() == wanted:
                del entry.items[index]
                return True
        return False

    def count_on(self, name: str, day: date) -> int:
        entry = self.entry_for(day)
        if entry is None:
            return 0
        wanted = name.lower()
        return sum(1 for item in entry.items if item.name.lower() == wanted)

    def distinct_days(self) -> int:
        return len({log.date for log in self.logs if log.items})

    def purchases_on(self, day: date, categories: CategoryRegistry) -> list[DayPurchaseGroup]:
        """Group a day's purchases by category with repeat counts.

        Args:
            day: Calendar day
            categories: Registry used to resolve category ids

        Returns:
            Groups in first-seen order; each product listed once with its count
        """
        entry = self.entry_for(day)
        if entry is None:
            return []

        counts: dict[tuple[str, str], int] = {}
        for item in entry.items:
            key = (item.category_id, item.name)
            counts[key] = counts.get(key, 0) + 1

        groups: dict[str, DayPurchaseGroup] = {}
        seen: set[tuple[str, str]] = set()
        for item in entry.items:
            category = categories.resolve(item.category_id)
            key = (item.category_id, item.name)
            if category.id not in groups:
                groups[category.id] = DayPurchaseGroup(category=category)
            if key not in seen:
                groups[category.id].items.append(DayPurchase(name=item.name, count=counts[key]))
                seen.add(key)

        return list(groups.values())
