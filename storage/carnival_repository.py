"""DynamoDB repository for carnival rows."""
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import Carnival, CarnivalSource

logger = logging.getLogger(__name__)

DATE_FIELDS = ('date', 'my_sideline_date')
DATETIME_FIELDS = ('last_mysideline_sync', 'created_at', 'updated_at')
FLOAT_FIELDS = ('location_latitude', 'location_longitude')


def to_attribute(value: Any) -> Any:
    """Convert a Python value to its DynamoDB representation."""
    if isinstance(value, CarnivalSource):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class CarnivalRepository:
    """Carnival store backed by a DynamoDB table keyed by ``id``."""

    def __init__(
        self,
        table_name: str,
        dynamodb=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize DynamoDB table reference.

        Args:
            table_name: Name of the DynamoDB table
            dynamodb: Optional boto3 DynamoDB resource
            clock: Returns the current local time
        """
        self.table_name = table_name
        self.dynamodb = dynamodb or boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self.clock = clock
        logger.info(f"Initialized CarnivalRepository for table: {table_name}")

    def list_all(self) -> List[Carnival]:
        """Retrieve every carnival using a paginated Scan."""
        return [self._item_to_carnival(item) for item in self._scan()]

    def get(self, carnival_id: str) -> Optional[Carnival]:
        response = self.table.get_item(Key={'id': carnival_id})
        item = response.get('Item')
        return self._item_to_carnival(item) if item else None

    def find_by_external_id(self, my_sideline_id: str) -> List[Carnival]:
        """
        Find carnivals carrying a MySideline ID.

        Returns every match so callers can detect duplicates.
        """
        items = self._scan(FilterExpression=Attr('my_sideline_id').eq(my_sideline_id))
        return [self._item_to_carnival(item) for item in items]

    def find_by_immutable_keys(
        self,
        my_sideline_title: str,
        my_sideline_date: Optional[date],
        my_sideline_address: Optional[str],
    ) -> Optional[Carnival]:
        """
        Find an imported carnival by its first-seen title, date and address.

        All three must be equal; a missing date or address only matches
        a row where it is missing too.
        """
        for carnival in self.list_all():
            if (
                not carnival.is_manually_entered
                and carnival.my_sideline_title == my_sideline_title
                and carnival.my_sideline_date == my_sideline_date
                and carnival.my_sideline_address == my_sideline_address
            ):
                return carnival
        return None

    def find_by_date_and_title(self, event_date: date, title: str) -> Optional[Carnival]:
        """Find an imported carnival by display date and title."""
        for carnival in self.list_all():
            if (
                not carnival.is_manually_entered
                and carnival.date == event_date
                and carnival.title == title
            ):
                return carnival
        return None

    def insert(self, carnival: Carnival) -> Carnival:
        """
        Store a new carnival, assigning its id and timestamps.

        Args:
            carnival: Carnival to insert; an empty id is replaced

        Returns:
            The stored Carnival
        """
        now = self.clock()
        carnival.id = carnival.id or str(uuid.uuid4())
        carnival.created_at = now
        carnival.updated_at = now

        self.table.put_item(Item=self._carnival_to_item(carnival))
        return carnival

    def update(self, carnival_id: str, patch: Dict[str, Any]) -> Carnival:
        """
        Apply a partial update to a carnival.

        Fields set to None are removed from the item.

        Args:
            carnival_id: Id of the carnival
            patch: Field name to new value

        Returns:
            The carnival after the update
        """
        patch = dict(patch)
        patch['updated_at'] = self.clock()

        names = {}
        values = {}
        set_parts = []
        remove_parts = []

        for index, (field_name, value) in enumerate(patch.items()):
            placeholder = f"#f{index}"
            names[placeholder] = field_name
            if value is None:
                remove_parts.append(placeholder)
            else:
                values[f":v{index}"] = to_attribute(value)
                set_parts.append(f"{placeholder} = :v{index}")

        expression = 'SET ' + ', '.join(set_parts)
        if remove_parts:
            expression += ' REMOVE ' + ', '.join(remove_parts)

        response = self.table.update_item(
            Key={'id': carnival_id},
            UpdateExpression=expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ConditionExpression=Attr('id').exists(),
            ReturnValues='ALL_NEW',
        )
        return self._item_to_carnival(response['Attributes'])

    def count_active_before(self, cutoff: date) -> int:
        return len(self._active_before(cutoff))

    def deactivate_past_before(self, cutoff: date) -> int:
        """
        Set is_active to false on every active carnival dated before cutoff.

        Args:
            cutoff: First date that stays active

        Returns:
            Count of deactivated carnivals
        """
        past = self._active_before(cutoff)
        count = 0

        for carnival in past:
            days_past = (cutoff - carnival.date).days
            logger.info(
                f"Deactivating '{carnival.title}' ({carnival.state}) - {days_past} days past"
            )
            try:
                self.update(carnival.id, {'is_active': False})
                count += 1
            except ClientError as e:
                logger.error(f"Error deactivating carnival {carnival.id}: {e}")
                raise

        return count

    def _active_before(self, cutoff: date) -> List[Carnival]:
        return [
            carnival for carnival in self.list_all()
            if carnival.is_active and carnival.date and carnival.date < cutoff
        ]

    def _scan(self, **kwargs) -> List[dict]:
        try:
            response = self.table.scan(**kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'], **kwargs
                )
                items.extend(response.get('Items', []))

            return items

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table {self.table_name}: {e}")
            raise

    def _carnival_to_item(self, carnival: Carnival) -> dict:
        item = {}
        for field_name, value in vars(carnival).items():
            # Optional fields are only stored when present
            if value is not None:
                item[field_name] = to_attribute(value)
        return item

    def _item_to_carnival(self, item: dict) -> Carnival:
        values = dict(item)

        for field_name in DATE_FIELDS:
            if values.get(field_name):
                values[field_name] = date.fromisoformat(values[field_name])
        for field_name in DATETIME_FIELDS:
            if values.get(field_name):
                values[field_name] = datetime.fromisoformat(values[field_name])
        for field_name in FLOAT_FIELDS:
            if values.get(field_name) is not None:
                values[field_name] = float(values[field_name])
        if values.get('source'):
            values['source'] = CarnivalSource(values['source'])

        known = Carnival.__dataclass_fields__
        return Carnival(**{k: v for k, v in values.items() if k in known})
