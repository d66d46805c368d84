from django.core.management.base import BaseCommand

from circulation.accounts import lift_expired_suspensions


class Command(BaseCommand):
    help = 'Restore APPROVED status for users whose timed suspension has ended'

    def handle(self, *args, **options):
        lifted = lift_expired_suspensions()
        self.stdout.write(self.style.SUCCESS(f'Lifted {lifted} expired suspension(s)'))
