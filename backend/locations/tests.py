import uuid
from unittest.mock import MagicMock, patch

import requests

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import Category, InsiderTip, Location, build_tag_index, slugify_name
from .services import CategoryService, DuplicateCategoryName, LocationQueryService

User = get_user_model()


def make_location(name, **kwargs):
    data = {
        'name': name,
        'category': 'Cafe',
        'neighborhood': 'Gardens',
        'description': f"{name} description",
        'latitude': '-33.9249',
        'longitude': '18.4241',
    }
    data.update(kwargs)
    return Location.objects.create(**data)


class LocationModelTests(TestCase):

    def test_slug_generated_from_name(self):
        """A location saved without a slug gets one derived from its name."""
        location = make_location("Truth Coffee Roasting!")
        self.assertEqual(location.slug, "truth-coffee-roasting")

    def test_generated_slug_is_unique(self):
        first = make_location("Kloof Street House")
        second = make_location("Kloof Street House")
        self.assertEqual(first.slug, "kloof-street-house")
        self.assertEqual(second.slug, "kloof-street-house-2")

    def test_slugify_name_collapses_separators(self):
        self.assertEqual(slugify_name("  Café -- Caprice  "), "cafe-caprice")
        self.assertEqual(slugify_name("!!!"), "")

    def test_invalid_coordinates(self):
        """Coordinates outside valid degrees or not numeric raise ValueError on save."""
        with self.assertRaises(ValueError):
            make_location("Off the map", latitude='95.0')
        with self.assertRaises(ValueError):
            make_location("Nowhere", longitude='east')

    def test_tags_are_normalised(self):
        location = make_location("Tagged", tags=[' Coffee ', '', 'Brunch'])
        self.assertEqual(location.tags, ['Coffee', 'Brunch'])
        self.assertEqual(location.tag_index, '|coffee|brunch|')

    def test_defaults(self):
        location = make_location("Plain")
        self.assertEqual(location.tags, [])
        self.assertEqual(location.images, [])
        self.assertEqual(location.related_location_ids, [])
        self.assertIsNone(location.thumbnail)
        self.assertEqual(build_tag_index([]), '')

    def test_thumbnail_is_first_image(self):
        location = make_location("Pictured", images=['/a.jpg', '/b.jpg'])
        self.assertEqual(location.thumbnail, '/a.jpg')

    def test_delete_cascades_to_insider_tips(self):
        location = make_location("Tipped")
        InsiderTip.objects.create(location=location, question="Parking?", answer="Street only")
        location.delete()
        self.assertEqual(InsiderTip.objects.count(), 0)

    def test_insider_tips_ordered_numerically(self):
        location = make_location("Ordered")
        InsiderTip.objects.create(location=location, question="ten", answer="a", sort_order='10')
        InsiderTip.objects.create(location=location, question="two", answer="b", sort_order='2')
        InsiderTip.objects.create(location=location, question="zero", answer="c")

        questions = [tip.question for tip in InsiderTip.for_location(location.id)]
        self.assertEqual(questions, ['zero', 'two', 'ten'])

    def test_insider_tip_sort_order_must_be_numeric(self):
        """Admin forms run model validation, so a non-numeric sort order never reaches the table."""
        location = make_location("Validated")
        with self.assertRaises(ValidationError) as ctx:
            InsiderTip(location=location, question="q", answer="a", sort_order='first').full_clean()
        self.assertIn('sort_order', ctx.exception.message_dict)

        InsiderTip(location=location, question="q", answer="a", sort_order='12').full_clean()

    def test_bare_string_tag_is_one_tag(self):
        location = make_location("Single tag", tags='coffee', images='/cover.jpg')
        self.assertEqual(location.tags, ['coffee'])
        self.assertEqual(location.tag_index, '|coffee|')
        self.assertEqual(location.images, ['/cover.jpg'])


class LocationQueryServiceTests(TestCase):
    def setUp(self):
        self.truth = make_location(
            "Truth Coffee", category="Cafe", neighborhood="CBD",
            address="36 Buitenkant St", tags=['Coffee', 'Steampunk'], featured=True,
        )
        self.clifton = make_location(
            "Clifton 4th", category="Beach", neighborhood="Clifton",
            description="Sheltered white sand beach", tags=['Beach', 'Sunset'],
        )
        self.lions = make_location(
            "Lion's Head", category="Hike", neighborhood="Signal Hill",
            tags=['Sunset', 'Hiking', 'coffee'], featured=True,
        )

    def test_search_matches_every_text_field(self):
        """Any substring of name, description, category, neighborhood, address or a tag finds the location."""
        for query in ['truth', 'CAFE', 'cbd', 'buitenkant', 'steam', 'Coffee description']:
            with self.subTest(query=query):
                self.assertIn(self.truth, LocationQueryService.search(query))

    def test_search_is_case_insensitive(self):
        self.assertEqual(
            set(LocationQueryService.search('SAND')),
            set(LocationQueryService.search('sand')),
        )
        self.assertEqual(list(LocationQueryService.search('sand')), [self.clifton])

    def test_search_with_tag_is_conjunctive(self):
        """search(query, tag) is contained in search(query) and by_tag(tag)."""
        combined = set(LocationQueryService.search('sunset', tag='hiking'))
        self.assertEqual(combined, {self.lions})
        self.assertTrue(combined <= set(LocationQueryService.search('sunset')))
        self.assertTrue(combined <= set(LocationQueryService.by_tag('hiking')))

    def test_search_with_tag_does_not_widen(self):
        self.assertEqual(list(LocationQueryService.search('clifton', tag='coffee')), [])

    def test_search_requires_query(self):
        with self.assertRaises(ValueError):
            LocationQueryService.search('')
        with self.assertRaises(ValueError):
            LocationQueryService.search('   ')

    def test_by_tag_is_case_insensitive(self):
        self.assertEqual(
            set(LocationQueryService.by_tag('Coffee')),
            set(LocationQueryService.by_tag('coffee')),
        )
        self.assertEqual(set(LocationQueryService.by_tag('COFFEE')), {self.truth, self.lions})

    def test_by_tag_is_exact(self):
        """A tag filter does not match tags that merely contain it."""
        self.assertEqual(list(LocationQueryService.by_tag('Sun')), [])

    def test_popular_tags_sorted_and_limited(self):
        tags = LocationQueryService.popular_tags(3)
        self.assertEqual(len(tags), 3)
        self.assertEqual(tags[0], {'tag': 'Sunset', 'count': 2})
        # Ties at count 1 break alphabetically.
        self.assertEqual([t['tag'] for t in tags[1:]], ['Beach', 'Coffee'])

    def test_popular_tags_counts_locations_once(self):
        make_location("Repeat", tags=['Wine', 'Wine'])
        tags = {t['tag']: t['count'] for t in LocationQueryService.popular_tags(20)}
        self.assertEqual(tags['Wine'], 1)

    def test_featured_paginates(self):
        self.assertEqual(list(LocationQueryService.featured(10)), [self.truth, self.lions])
        self.assertEqual(list(LocationQueryService.featured(1, 1)), [self.lions])
        self.assertEqual(list(LocationQueryService.featured(0)), [])

    def test_by_ids_empty(self):
        with self.assertNumQueries(0):
            self.assertEqual(LocationQueryService.by_ids([]), [])

    def test_by_ids_drops_invalid_and_unknown(self):
        ids = [str(self.truth.id), 'not-a-uuid', str(uuid.uuid4()), str(self.clifton.id)]
        self.assertEqual(set(LocationQueryService.by_ids(ids)), {self.truth, self.clifton})

    def test_related(self):
        self.truth.related_location_ids = [str(self.clifton.id), str(uuid.uuid4())]
        self.truth.save()
        self.assertEqual(LocationQueryService.related(self.truth.id), [self.clifton])
        self.assertEqual(LocationQueryService.related(self.clifton.id), [])

    def test_related_of_unknown_location(self):
        with self.assertRaises(Location.DoesNotExist):
            LocationQueryService.related(uuid.uuid4())


class CategoryServiceTests(TestCase):
    def setUp(self):
        self.coffee = Category.objects.create(name="Coffee Shop")
        Category.objects.create(name="Beach")
        self.cafe_one = make_location("One", category="Coffee Shop")
        self.cafe_two = make_location("Two", category="Coffee Shop")
        self.beach = make_location("Sand", category="Beach")

    def test_rename_cascades_to_locations(self):
        """Renaming a category moves every location using the old name and nothing else."""
        CategoryService.update_category(self.coffee, {'name': 'Cafe'})

        self.cafe_one.refresh_from_db()
        self.cafe_two.refresh_from_db()
        self.beach.refresh_from_db()
        self.assertEqual(self.cafe_one.category, 'Cafe')
        self.assertEqual(self.cafe_two.category, 'Cafe')
        self.assertEqual(self.beach.category, 'Beach')
        self.assertFalse(Location.objects.filter(category='Coffee Shop').exists())

    def test_rename_to_existing_name_rejected(self):
        with self.assertRaises(DuplicateCategoryName):
            CategoryService.update_category(self.coffee, {'name': 'Beach'})
        self.cafe_one.refresh_from_db()
        self.assertEqual(self.cafe_one.category, 'Coffee Shop')

    def test_description_update_leaves_locations(self):
        CategoryService.update_category(self.coffee, {'description': 'Flat whites'})
        self.coffee.refresh_from_db()
        self.assertEqual(self.coffee.description, 'Flat whites')
        self.assertEqual(Location.objects.filter(category='Coffee Shop').count(), 2)

    def test_create_duplicate_rejected(self):
        with self.assertRaises(DuplicateCategoryName):
            CategoryService.create_category('Beach')

    def test_delete_keeps_locations(self):
        CategoryService.delete_category(self.coffee)
        self.assertEqual(Location.objects.filter(category='Coffee Shop').count(), 2)


@override_settings(INDEXNOW_API_KEY=None)
class LocationAPITests(APITestCase):
    def setUp(self):
        self.curator = User.objects.create_user(username='curator', password='unused', is_staff=True)
        self.location = make_location(
            "Cause Effect", category="Bar", neighborhood="CBD",
            tags=['Cocktails', 'Nightlife'], featured=True,
        )
        self.list_url = reverse('locations:location-list')
        self.detail_url = reverse('locations:location-detail', args=[self.location.id])
        self.payload = {
            'name': "The Power & The Glory",
            'category': 'Bar',
            'neighborhood': 'Tamboerskloof',
            'description': 'Neighbourhood bar',
            'latitude': '-33.9275',
            'longitude': '18.4106',
            'tags': ['Cocktails', ' Burgers '],
        }

    def test_list_locations(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], "Cause Effect")
        self.assertNotIn('tag_index', response.data[0])

    def test_retrieve_and_unknown_id(self):
        response = self.client.get(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['slug'], 'cause-effect')

        missing = reverse('locations:location-detail', args=[uuid.uuid4()])
        response = self.client.get(missing)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_search_endpoint(self):
        response = self.client.get(reverse('locations:location-search'), {'q': 'cause'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data], [str(self.location.id)])

    def test_search_without_query(self):
        response = self.client.get(reverse('locations:location-search'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], "Search query parameter 'q' is required")

    def test_by_tag_and_by_slug(self):
        response = self.client.get(reverse('locations:location-by-tag', kwargs={'tag': 'nightlife'}))
        self.assertEqual(len(response.data), 1)

        response = self.client.get(reverse('locations:location-by-slug', kwargs={'slug': 'cause-effect'}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], str(self.location.id))

        response = self.client.get(reverse('locations:location-by-slug', kwargs={'slug': 'nope'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_featured_endpoint(self):
        response = self.client.get(reverse('locations:location-featured'), {'limit': 5, 'offset': 0})
        self.assertEqual(len(response.data), 1)

        response = self.client.get(reverse('locations:location-featured'), {'limit': 'many'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_related_endpoint(self):
        other = make_location("Other")
        self.location.related_location_ids = [str(other.id)]
        self.location.save()

        response = self.client.get(reverse('locations:location-related', args=[self.location.id]))
        self.assertEqual([item['id'] for item in response.data], [str(other.id)])

        response = self.client.get(reverse('locations:location-related', args=[uuid.uuid4()]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_insider_tips_endpoint(self):
        InsiderTip.objects.create(location=self.location, question="Best time?", answer="After 9", sort_order='1')
        response = self.client.get(reverse('locations:location-insider-tips', args=[self.location.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['question'], "Best time?")
        self.assertEqual(response.data[0]['location_id'], self.location.id)

    def test_popular_tags_endpoint(self):
        response = self.client.get(reverse('locations:popular-tags'))
        self.assertIn({'tag': 'Cocktails', 'count': 1}, response.data)

    def test_create_requires_session(self):
        """Anonymous writes are refused with 401, not 403."""
        response = self.client.post(self.list_url, self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(Location.objects.count(), 1)

    @patch('locations.views.notify_location_changed')
    def test_create_location(self, mock_notify):
        self.client.force_authenticate(user=self.curator)
        response = self.client.post(self.list_url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'the-power-the-glory')
        self.assertEqual(response.data['tags'], ['Cocktails', 'Burgers'])
        mock_notify.assert_called_once_with('the-power-the-glory')

    @patch('locations.views.notify_location_changed')
    def test_create_validation_errors(self, mock_notify):
        self.client.force_authenticate(user=self.curator)
        for field, value in [('latitude', '123'), ('longitude', 'west'), ('slug', 'Bad Slug'), ('tags', ['a|b'])]:
            with self.subTest(field=field):
                payload = dict(self.payload, **{field: value})
                response = self.client.post(self.list_url, payload, format='json')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data['error'], 'Invalid data')
                self.assertIn(field, response.data['details'])

        response = self.client.post(self.list_url, dict(self.payload, slug='cause-effect'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_notify.assert_not_called()

    @patch('locations.views.notify_location_changed')
    def test_put_is_partial(self, mock_notify):
        self.client.force_authenticate(user=self.curator)
        response = self.client.put(self.detail_url, {'featured': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.location.refresh_from_db()
        self.assertFalse(self.location.featured)
        self.assertEqual(self.location.name, "Cause Effect")
        mock_notify.assert_called_once_with('cause-effect')

    @patch('locations.views.notify_location_changed')
    def test_social_fields_read_only(self, mock_notify):
        self.client.force_authenticate(user=self.curator)
        self.client.patch(self.detail_url, {'trending_score': 999}, format='json')
        self.location.refresh_from_db()
        self.assertEqual(self.location.trending_score, 0.0)

    @patch('locations.views.notify_location_changed')
    def test_delete_location(self, mock_notify):
        self.client.force_authenticate(user=self.curator)
        response = self.client.delete(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Location.objects.exists())
        mock_notify.assert_called_once_with('cause-effect')

    @patch('seo.indexnow.requests.get', side_effect=requests.ConnectionError("offline"))
    @override_settings(INDEXNOW_API_KEY='abc123')
    def test_failed_notification_does_not_fail_write(self, mock_get):
        """The ping runs after commit; here the worker thread is run inline."""
        def run_inline(target, args=(), kwargs=None, **options):
            return MagicMock(start=lambda: target(*args, **(kwargs or {})))

        self.client.force_authenticate(user=self.curator)
        with patch('seo.indexnow.threading.Thread', side_effect=run_inline):
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post(self.list_url, self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        mock_get.assert_called_once()
        self.assertEqual(mock_get.call_args[1]['timeout'], 3)


@override_settings(INDEXNOW_API_KEY=None)
class CategoryAPITests(APITestCase):
    def setUp(self):
        self.curator = User.objects.create_user(username='curator', password='unused', is_staff=True)
        self.bar = Category.objects.create(name="Bar")
        self.list_url = reverse('locations:category-list')
        self.detail_url = reverse('locations:category-detail', args=[self.bar.id])

    def test_public_read(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['name'], "Bar")

    def test_write_requires_session(self):
        response = self.client.post(self.list_url, {'name': 'Beach'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_duplicate_name(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.post(self.list_url, {'name': 'Bar'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'A category with this name already exists')

        Category.objects.create(name="Pub")
        response = self.client.put(self.detail_url, {'name': 'Pub'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rename_through_api(self):
        make_location("Cause Effect", category="Bar")
        self.client.force_authenticate(user=self.curator)
        response = self.client.put(self.detail_url, {'name': 'Cocktail Bar'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Location.objects.get().category, 'Cocktail Bar')

    def test_delete(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.delete(self.detail_url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Category.objects.exists())


class InsiderTipAdminAPITests(APITestCase):
    def setUp(self):
        self.curator = User.objects.create_user(username='curator', password='unused', is_staff=True)
        self.location = make_location("Tipped")
        self.list_url = reverse('locations:insider-tip-list')

    def test_requires_session(self):
        response = self.client.post(self.list_url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_update_delete(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.post(self.list_url, {
            'location_id': str(self.location.id),
            'question': 'Is there wifi?',
            'answer': 'Yes, ask for the code',
            'icon': 'wifi',
            'sort_order': '3',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        detail_url = reverse('locations:insider-tip-detail', args=[response.data['id']])
        response = self.client.put(detail_url, {'answer': 'No'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(InsiderTip.objects.get().answer, 'No')

        response = self.client.delete(detail_url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_rejects_unknown_icon(self):
        self.client.force_authenticate(user=self.curator)
        response = self.client.post(self.list_url, {
            'location_id': str(self.location.id),
            'question': 'Q',
            'answer': 'A',
            'icon': 'rocket',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
