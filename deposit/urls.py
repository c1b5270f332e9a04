from django.urls import path

from deposit import views

urlpatterns = [
        path('col-iri/<str:journal_uuid>',
            views.create_deposit, name='sword-collection'),
        path('cont-iri/<str:journal_uuid>/<str:deposit_uuid>/edit',
            views.edit_deposit, name='sword-edit'),
]
