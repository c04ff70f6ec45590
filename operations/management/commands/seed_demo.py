from django.core.management.base import BaseCommand
from django.db import transaction

from operations import services
from operations.models import Client, Project, User

DEMO_USERS = (
    ('admin', 'admin@example.com', User.Roles.ADMIN),
    ('superadmin', 'superadmin@example.com', User.Roles.SUPER_ADMIN),
    ('engineer', 'engineer@example.com', User.Roles.ENGINEER),
    ('finance', 'finance@example.com', User.Roles.FINANCE),
)


class Command(BaseCommand):
    help = "Seed the database with one user per role, a client and a draft project."

    def add_arguments(self, parser):
        parser.add_argument('--password', default='demo12345', help='Password assigned to newly created users.')

    @transaction.atomic
    def handle(self, *args, **options):
        users = {}
        for username, email, role in DEMO_USERS:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={'email': email, 'role': role, 'first_name': username.title()},
            )
            if created:
                user.set_password(options['password'])
                user.save(update_fields=['password'])
                self.stdout.write(f"Created {role} user {username}")
            users[role] = user

        admin = users[User.Roles.ADMIN]
        client = Client.objects.filter(trn_number='100200300400003').first()
        if client is None:
            client = services.create_client(
                {
                    'client_name': 'Al Noor Facilities',
                    'client_address': 'Office 12, Business Bay, Dubai',
                    'pincode': '123456',
                    'mobile_number': '+971 50 123 4567',
                    'trn_number': '100200300400003',
                    'email': 'facilities@alnoor.example.com',
                },
                actor=admin,
            )

        project = Project.objects.filter(client=client).first()
        if project is None:
            project = services.create_project(
                {
                    'project_name': 'Chiller Plant Maintenance',
                    'project_description': 'Quarterly maintenance of the rooftop chiller plant.',
                    'client': client,
                    'site_address': 'Tower B, Business Bay',
                    'site_location': 'Dubai',
                },
                actor=admin,
            )
            self.stdout.write(f"Created project {project.project_number}")

        self.stdout.write(self.style.SUCCESS("Demo data ready."))
