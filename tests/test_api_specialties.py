from medsearch.models.specialty_models import Specialty

NEW_SPECIALTY = {
    'name': 'Neurología',
    'nameEn': 'Neurology',
    'description': 'Sistema nervioso.',
    'descriptionEn': 'Nervous system.',
    'icon': '🧠',
    'category': 'Medical',
    'priority': 7,
    'seoKeywords': ['Neurologo', ' cerebro ', 'neurologo'],
}


def test_list_orders_by_priority_then_name(client, db):
    for name, priority, active in [('Pediatría', 8, True), ('Alergología', 8, True), ('Cardiología', 9, True),
                                   ('Oculta', 10, False)]:
        db.session.add(Specialty(name=name, name_en=name, description='d', description_en='d', priority=priority,
                                 is_active=active))
    db.session.commit()

    names = [s['name'] for s in client.get('/api/specialties?active=true').get_json()['specialties']]
    assert names == ['Cardiología', 'Alergología', 'Pediatría']

    all_names = [s['name'] for s in client.get('/api/specialties').get_json()['specialties']]
    assert all_names[0] == 'Oculta'


def test_admin_creates_specialty(client, auth_headers):
    response = client.post('/api/specialties', json=NEW_SPECIALTY, headers=auth_headers('admin-1', 'company_admin'))
    assert response.status_code == 201
    specialty = response.get_json()['specialty']
    assert specialty['seoKeywords'] == ['neurologo', 'cerebro']


def test_specialty_validation(client, auth_headers):
    headers = auth_headers('admin-1', 'company_admin')
    assert client.post('/api/specialties', json={**NEW_SPECIALTY, 'category': 'Magic'}, headers=headers).status_code == 400
    assert client.post('/api/specialties', json={**NEW_SPECIALTY, 'priority': 11}, headers=headers).status_code == 400

    missing = {k: v for k, v in NEW_SPECIALTY.items() if k != 'descriptionEn'}
    response = client.post('/api/specialties', json=missing, headers=headers)
    assert response.get_json()['details'] == {'fields': ['descriptionEn']}


def test_duplicate_specialty_name(client, auth_headers, specialty):
    response = client.post('/api/specialties', json={**NEW_SPECIALTY, 'name': 'Cardiología'},
                           headers=auth_headers('admin-1', 'company_admin'))
    assert response.status_code == 409


def test_update_specialty(client, auth_headers, specialty):
    headers = auth_headers('admin-1', 'company_admin')
    response = client.put(f'/api/specialties/{specialty.id}', json={'priority': 3, 'isActive': False}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['specialty']['priority'] == 3
    assert response.get_json()['specialty']['isActive'] is False

    assert client.put('/api/specialties/999', json={'priority': 3}, headers=headers).status_code == 404


def test_doctors_cannot_manage_specialties(client, auth_headers):
    response = client.post('/api/specialties', json=NEW_SPECIALTY, headers=auth_headers('doc-9', 'doctor'))
    assert response.status_code == 403
