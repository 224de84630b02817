from django.urls import path

from . import views


urlpatterns = [

    # -------------------------
    # Result approval
    # -------------------------
    path('results/approval/', views.result_approval, name="result_approval"),
    path('lecturer/results/', views.submit_result, name="submit_result"),

    # -------------------------
    # Course registrations
    # -------------------------
    path('registrations/', views.registrations, name="registrations"),
    path('registrations/decide/', views.decide_registrations, name="decide_registrations"),

    # -------------------------
    # Student-facing
    # -------------------------
    path('students/<int:student_id>/gpa/', views.student_gpa, name="student_gpa"),
    path('students/<int:student_id>/results/', views.student_results, name="student_results"),
]
