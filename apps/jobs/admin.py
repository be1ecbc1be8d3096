from django.contrib import admin
from .models import Job, JobRevision, Application, Review


class JobRevisionInline(admin.TabularInline):
    model = JobRevision
    extra = 0
    readonly_fields = ('requested_by', 'reason', 'requested_at')


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('title', 'client', 'worker', 'status', 'worker_acceptance', 'progress', 'deadline', 'created_at')
    list_filter = ('status', 'worker_acceptance', 'category')
    search_fields = ('title', 'client__username', 'worker__username')
    readonly_fields = ('version',)
    inlines = [JobRevisionInline]


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('job', 'worker', 'status', 'proposed_budget', 'applied_at')
    list_filter = ('status',)
    search_fields = ('job__title', 'worker__username')
    readonly_fields = ('version',)


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('job', 'reviewer', 'reviewee', 'review_type', 'rating', 'created_at')
    list_filter = ('review_type', 'rating')
    search_fields = ('job__title', 'reviewer__username', 'reviewee__username')
