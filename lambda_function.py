"""AWS Lambda handler for vendor event discovery."""
import json
import logging
import os
import time
from typing import Any, Dict, List, Set

from discovery.bookmarks import BookmarkStore
from discovery.dates import time_status
from discovery.links import estimate_profitability
from discovery.models import DiscoveredEvent, SearchCriteria
from discovery.pipeline import DiscoverySession
from discovery.selection import SelectionSet
from discovery.tracking import TrackingStore
from geo.cache import MemoryCache
from geo.distance import DistanceEngine
from geo.nominatim import NominatimGeocoder
from geo.resolver import GeoResolver
from sources.calendar_page import CalendarPageSource
from sources.manual import ManualEventSource
from sources.patterns import ListingPatternSource, WebPatternSource
from storage.dynamodb_store import DynamoDBStore
from storage.events_collection import EventsCollection

# Lookup caches live for the lifetime of the container
GEOCODE_CACHE = MemoryCache('geocode-cache')
DISTANCE_CACHE = MemoryCache('distance-cache')


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _event_payload(event: DiscoveredEvent, session: DiscoverySession,
                   bookmarked_ids: Set[str]) -> Dict[str, Any]:
    payload = event.to_dict()
    payload['displayLocation'] = session.display_location(event.id)
    payload['tracking'] = session.status(event.id)
    payload['bookmarked'] = event.id in bookmarked_ids
    payload['timeStatus'] = time_status(event.start_date)
    payload['profitability'] = estimate_profitability(event.table_cost)
    return payload


def build_session(store, config: Dict[str, Any]) -> DiscoverySession:
    """Wire resolver, sources and stores for one invocation."""
    geocoder = NominatimGeocoder(
        base_url=config['geocoder_url'],
        timeout=config['timeout_seconds'],
        user_agent=config['user_agent']
    )
    resolver = GeoResolver(geocoder, cache=GEOCODE_CACHE)
    distance_engine = DistanceEngine(resolver, cache=DISTANCE_CACHE)
    events_collection = EventsCollection(store)

    # Priority order decides which duplicate survives
    sources = [
        ManualEventSource(store, events_collection, resolver),
        ListingPatternSource(),
        WebPatternSource(),
    ]
    if config.get('calendar_url'):
        sources.insert(1, CalendarPageSource(
            config['calendar_url'], timeout=config['timeout_seconds']
        ))

    return DiscoverySession(
        resolver=resolver,
        distance_engine=distance_engine,
        sources=sources,
        store=store,
        events_collection=events_collection,
        max_workers=config['max_workers']
    )


def handle_search(body: Dict[str, Any], session: DiscoverySession) -> Dict[str, Any]:
    location = (body.get('location') or '').strip()
    if not location:
        return _response(400, {
            'message': 'Please enter a location to search (ZIP code, city, state, or address).'
        })

    criteria = SearchCriteria(
        location=location,
        radius=int(body.get('radius', 25)),
        event_type=body.get('eventType') or None,
        date_from=body.get('dateFrom') or None,
        date_to=body.get('dateTo') or None,
        include_historical=bool(body.get('includeHistorical', False))
    )
    outcome = session.search(criteria, sort_by=body.get('sortBy', 'date'))
    bookmarked_ids = {b.get('id') for b in session.bookmarks.list()}

    return _response(200, {
        'status': outcome.status,
        'origin': outcome.origin.to_dict() if outcome.origin else None,
        'count': len(outcome.events),
        'results': [_event_payload(e, session, bookmarked_ids) for e in outcome.events],
        'failedSources': outcome.failed_sources
    })


def handle_bulk_apply(body: Dict[str, Any], store) -> Dict[str, Any]:
    events: List[DiscoveredEvent] = [
        DiscoveredEvent.from_dict(item) for item in body.get('events', [])
    ]
    selection = SelectionSet()
    for event_id in body.get('eventIds', []):
        selection.toggle(event_id)

    result = selection.bulk_commit(events, EventsCollection(store), TrackingStore(store))
    return _response(200, result.to_dict())


def handle_track(body: Dict[str, Any], store) -> Dict[str, Any]:
    tracking = TrackingStore(store)
    event_id = body['eventId']
    status = body['status']
    if body.get('enabled', True):
        record = tracking.track(event_id, status)
    else:
        record = tracking.untrack(event_id, status)
    return _response(200, {'eventId': event_id, 'tracking': record})


def handle_interested(body: Dict[str, Any], store) -> Dict[str, Any]:
    event_id = body['eventId']
    record = TrackingStore(store).mark_interested(event_id)
    return _response(200, {'eventId': event_id, 'tracking': record})


def handle_bookmark(body: Dict[str, Any], store) -> Dict[str, Any]:
    event = DiscoveredEvent.from_dict(body['event'])
    added = BookmarkStore(store).bookmark(event, notes=body.get('notes', ''))
    return _response(200, {'eventId': event.id, 'bookmarked': added})


def handle_remove_bookmark(body: Dict[str, Any], store) -> Dict[str, Any]:
    event_id = body['eventId']
    removed = BookmarkStore(store).remove(event_id)
    return _response(200, {'eventId': event_id, 'removed': removed})


def handle_remove_saved_event(body: Dict[str, Any], store) -> Dict[str, Any]:
    event_id = body['eventId']
    removed = ManualEventSource(store).remove(event_id)
    return _response(200, {'eventId': event_id, 'removed': removed})


def handle_manual_event(body: Dict[str, Any], session: DiscoverySession) -> Dict[str, Any]:
    manual = next(s for s in session.sources if isinstance(s, ManualEventSource))
    try:
        event = manual.add_event(
            name=body.get('name', ''),
            start_date=body.get('startDate', ''),
            location=body.get('location', ''),
            end_date=body.get('endDate'),
            table_cost=float(body.get('tableCost') or 0),
            event_type=body.get('eventType', ''),
            url=body.get('url', ''),
            description=body.get('description', '')
        )
    except ValueError as e:
        return _response(400, {'message': str(e)})
    return _response(200, {'event': event.to_dict()})


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for vendor event discovery.

    Args:
        event: Request payload with an ``action`` and its fields
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    # Read configuration from environment variables
    config = {
        'table_name': os.environ.get('TABLE_NAME', 'vendor-events'),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '10')),
        'geocoder_url': os.environ.get(
            'GEOCODER_URL', NominatimGeocoder.BASE_URL
        ),
        'user_agent': os.environ.get(
            'GEOCODER_USER_AGENT', NominatimGeocoder.USER_AGENT
        ),
        'max_workers': int(os.environ.get('MAX_WORKERS', '8')),
        'calendar_url': os.environ.get('CALENDAR_URL')
    }
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    action = event.get('action', 'search')
    logger.info(
        f"Lambda execution started",
        extra={'action': action, 'table_name': config['table_name']}
    )

    try:
        store = DynamoDBStore(table_name=config['table_name'])

        if action == 'search':
            response = handle_search(event, build_session(store, config))
        elif action == 'manual_event':
            response = handle_manual_event(event, build_session(store, config))
        elif action == 'bulk_apply':
            response = handle_bulk_apply(event, store)
        elif action == 'track':
            response = handle_track(event, store)
        elif action == 'interested':
            response = handle_interested(event, store)
        elif action == 'bookmark':
            response = handle_bookmark(event, store)
        elif action == 'remove_bookmark':
            response = handle_remove_bookmark(event, store)
        elif action == 'remove_saved_event':
            response = handle_remove_saved_event(event, store)
        else:
            response = _response(400, {'message': f"Unknown action '{action}'"})

        duration = time.time() - start_time
        logger.info(
            f"Lambda execution completed",
            extra={
                'action': action,
                'status_code': response['statusCode'],
                'duration_seconds': round(duration, 2)
            }
        )
        return response

    except (KeyError, ValueError) as e:
        logger.warning(
            f"Invalid request for action '{action}': {e}",
            extra={'error_type': type(e).__name__}
        )
        return _response(400, {
            'message': 'Invalid request',
            'error': str(e),
            'error_type': type(e).__name__
        })

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
