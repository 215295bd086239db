from datetime import datetime
from medsearch.extensions import db

SPECIALTY_CATEGORIES = [
    'Medical',
    'Surgical',
    'Diagnostic',
    'Mental Health',
    'Pediatric',
    'Women Health',
    'Emergency',
    'Preventive',
    'Alternative'
]

# Seed catalogue used by `flask init-db`
DEFAULT_SPECIALTIES = [
    {
        'name': 'Cardiología', 'name_en': 'Cardiology', 'icon': '❤️', 'category': 'Medical', 'priority': 9,
        'description': 'Diagnóstico y tratamiento de enfermedades del corazón.',
        'description_en': 'Diagnosis and treatment of heart disease.',
        'common_conditions': ['Hipertensión', 'Arritmia'], 'seo_keywords': ['corazon', 'cardiologo'],
    },
    {
        'name': 'Pediatría', 'name_en': 'Pediatrics', 'icon': '👶', 'category': 'Pediatric', 'priority': 8,
        'description': 'Atención médica para bebés, niños y adolescentes.',
        'description_en': 'Medical care for infants, children and adolescents.',
        'common_conditions': ['Infecciones respiratorias'], 'seo_keywords': ['niños', 'pediatra'],
    },
    {
        'name': 'Dermatología', 'name_en': 'Dermatology', 'icon': '🧴', 'category': 'Medical', 'priority': 7,
        'description': 'Cuidado de la piel, cabello y uñas.',
        'description_en': 'Care of skin, hair and nails.',
        'common_conditions': ['Acné', 'Dermatitis'], 'seo_keywords': ['piel', 'dermatologo'],
    },
    {
        'name': 'Ginecología', 'name_en': 'Gynecology', 'icon': '👩‍⚕️', 'category': 'Women Health', 'priority': 7,
        'description': 'Salud del sistema reproductor femenino.',
        'description_en': 'Health of the female reproductive system.',
        'common_conditions': [], 'seo_keywords': ['ginecologo'],
    },
    {
        'name': 'Psiquiatría', 'name_en': 'Psychiatry', 'icon': '🧠', 'category': 'Mental Health', 'priority': 6,
        'description': 'Diagnóstico y tratamiento de trastornos mentales.',
        'description_en': 'Diagnosis and treatment of mental disorders.',
        'common_conditions': ['Ansiedad', 'Depresión'], 'seo_keywords': ['salud mental'],
    },
    {
        'name': 'Medicina General', 'name_en': 'General Medicine', 'icon': '🩺', 'category': 'Medical', 'priority': 5,
        'description': 'Atención primaria y preventiva.',
        'description_en': 'Primary and preventive care.',
        'common_conditions': [], 'seo_keywords': ['medico general'],
    },
]


class Specialty(db.Model):
    """Bilingual medical specialty shown in search filters and listings."""
    __tablename__ = 'specialties'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    name_en = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False)
    description_en = db.Column(db.Text, nullable=False)
    icon = db.Column(db.String(16), nullable=False, default='🩺')
    category = db.Column(db.String(50), nullable=False, default='Medical')
    common_conditions = db.Column(db.JSON, default=list)
    common_procedures = db.Column(db.JSON, default=list)
    seo_keywords = db.Column(db.JSON, default=list)
    # 1-10, higher is listed first
    priority = db.Column(db.Integer, nullable=False, default=5)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'nameEn': self.name_en,
            'description': self.description,
            'descriptionEn': self.description_en,
            'icon': self.icon,
            'category': self.category,
            'commonConditions': self.common_conditions or [],
            'commonProcedures': self.common_procedures or [],
            'seoKeywords': self.seo_keywords or [],
            'priority': self.priority,
            'isActive': self.is_active,
        }
